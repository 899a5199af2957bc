"""
DocumentRegistry: каталог документов поверх BlobStore.
Документ и его blob после загрузки не меняются, поэтому чтение без блокировок.
"""
import asyncio
import hashlib
import logging
import os

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.core.errors import DocumentNotFound, InvalidInput, TransientStorageError
from studymint.db.transaction import run_in_transaction
from studymint.models.document import Document
from studymint.models.user import normalize_identity
from studymint.schemas.documents import DocumentCreate
from studymint.storage.base import BlobStore

logger = logging.getLogger(__name__)


class DocumentRegistry:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        blob_store: BlobStore,
        cfg: Settings = settings,
    ):
        self.session_factory = session_factory
        self.blob_store = blob_store
        self.cfg = cfg

    async def create(self, data: DocumentCreate) -> Document:
        async def _create(db: AsyncSession) -> Document:
            document = Document(**data.model_dump())
            db.add(document)
            await db.flush()
            return document

        document = await run_in_transaction(
            self.session_factory, _create, operation="document_create", cfg=self.cfg
        )
        logger.info(
            "document_created",
            extra={"document_id": document.id, "blob_key": document.blob_key},
        )
        return document

    async def get(self, document_id: str) -> Document:
        async with self.session_factory() as db:
            document = await db.get(Document, document_id)
        if document is None:
            raise DocumentNotFound(detail={"document_id": document_id})
        return document

    async def list_all(self, category: str | None = None, section: str | None = None) -> list[Document]:
        """Все документы, новые первыми; category/section: необязательные фильтры."""
        query = select(Document)
        if category:
            query = query.where(Document.category == category)
        if section:
            query = query.where(Document.section == section)
        async with self.session_factory() as db:
            rows = await db.scalars(query.order_by(Document.uploaded_at.desc()))
            return list(rows)

    async def upload(
        self,
        file_name: str,
        content: bytes,
        content_type: str | None = None,
        *,
        display_name: str | None = None,
        uploader_kind: str = "admin",
        uploader_identity: str | None = None,
        category: str | None = None,
        section: str | None = None,
        tags: list[str] | None = None,
    ) -> Document:
        """Положить оригинал в blob store (ключ по sha256) и зарегистрировать документ."""
        if not content:
            raise InvalidInput("empty file")
        if len(content) > self.cfg.max_upload_size_bytes:
            raise InvalidInput(f"file exceeds {self.cfg.max_upload_size_mb} MB")

        ext = os.path.splitext(file_name)[1].lower()
        blob_key = f"documents/{hashlib.sha256(content).hexdigest()}{ext}"
        content_type = content_type or "application/octet-stream"
        await self._with_timeout(self.blob_store.put(blob_key, content, content_type), blob_key)

        return await self.create(
            DocumentCreate(
                display_name=display_name or os.path.splitext(file_name)[0] or file_name,
                blob_key=blob_key,
                original_file_name=file_name,
                content_type=content_type,
                byte_size=len(content),
                uploader_kind=uploader_kind,
                uploader_identity=normalize_identity(uploader_identity) if uploader_identity else None,
                category=category,
                section=section,
                tags=tags or [],
            )
        )

    async def fetch_original(self, blob_key: str, declared_type: str | None = None) -> tuple[bytes, str]:
        """Байты оригинала из blob store. Объявленный при загрузке content type приоритетнее."""
        try:
            content, blob_type = await self._with_timeout(self.blob_store.get(blob_key), blob_key)
        except FileNotFoundError:
            logger.error("document_blob_missing", extra={"blob_key": blob_key})
            raise DocumentNotFound(detail={"blob_key": blob_key})
        declared = declared_type
        if not declared or declared == "application/octet-stream":
            declared = blob_type
        return content, declared

    async def _with_timeout(self, awaitable, blob_key: str):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.cfg.storage_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning("blob_store_timeout", extra={"blob_key": blob_key})
            raise TransientStorageError(detail={"blob_key": blob_key}) from exc
