"""
Decision + списание: EntitlementService.request_download(identity, document_id) -> EntitlementGrant.

Гарантия «не больше одного списания на (identity, document)»:
- чек уже есть -> replay, без списания;
- иначе одна транзакция: INSERT чека (уникальный ключ), условное списание,
  строка журнала Download. Всё или ничего.
Параллельный дубль упирается в уникальный ключ чека, откатывается и
получает replay по чеку победителя.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.core.errors import DocumentNotFound, UserNotFound
from studymint.db.transaction import run_in_transaction
from studymint.models.document import Document
from studymint.models.download_receipt import DownloadReceipt
from studymint.models.ledger_entry import LedgerKind
from studymint.models.user import User, normalize_identity
from studymint.paywall.config import get_download_cost
from studymint.paywall.models import EntitlementGrant
from studymint.services.ledger.service import LedgerService
from studymint.utils.filenames import attachment_name
from studymint.utils.metrics import metrics

logger = logging.getLogger(__name__)


class EntitlementService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerService,
        *,
        download_cost: int | None = None,
        cfg: Settings = settings,
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.download_cost = get_download_cost(cfg) if download_cost is None else download_cost
        self.cfg = cfg

    async def request_download(self, identity: str, document_id: str) -> EntitlementGrant:
        identity = normalize_identity(identity)
        cost = self.download_cost

        async def _grant(db: AsyncSession) -> EntitlementGrant:
            document = await db.get(Document, document_id)
            if document is None:
                raise DocumentNotFound(detail={"document_id": document_id})
            receipt = await db.get(DownloadReceipt, (identity, document_id))
            if receipt is not None:
                return _to_grant(receipt, document, replay=True)
            if await db.get(User, identity) is None:
                raise UserNotFound(detail={"identity": identity})

            receipt = DownloadReceipt(
                identity=identity,
                document_id=document_id,
                file_name=attachment_name(document.display_name, document.original_file_name),
                coins_deducted=cost,
            )
            db.add(receipt)
            # чек первым: дубль ждёт на уникальном ключе, а не на балансе
            await db.flush()
            if cost > 0:
                await self.ledger.debit(db, identity, cost, LedgerKind.DOWNLOAD, document_id=document_id)
            return _to_grant(receipt, document, replay=False)

        try:
            grant = await run_in_transaction(
                self.session_factory, _grant, operation="request_download", cfg=self.cfg
            )
        except IntegrityError:
            grant = await self._load_grant(identity, document_id)
            if grant is None:
                raise
            logger.info(
                "paywall_download_race_lost",
                extra={"identity": identity, "document_id": document_id},
            )

        metrics.inc_download_granted(grant.replay)
        logger.info(
            "paywall_download_replay" if grant.replay else "paywall_download_granted",
            extra={
                "identity": identity,
                "document_id": document_id,
                "amount": 0 if grant.replay else grant.coins_deducted,
                "replay": grant.replay,
            },
        )
        return grant

    async def _load_grant(self, identity: str, document_id: str) -> EntitlementGrant | None:
        async with self.session_factory() as db:
            receipt = await db.get(DownloadReceipt, (identity, document_id))
            document = await db.get(Document, document_id)
        if receipt is None or document is None:
            return None
        return _to_grant(receipt, document, replay=True)

    async def list_receipts(self, identity: str) -> list[DownloadReceipt]:
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            rows = await db.scalars(
                select(DownloadReceipt)
                .where(DownloadReceipt.identity == identity)
                .order_by(DownloadReceipt.created_at.desc())
            )
            return list(rows)


def _to_grant(receipt: DownloadReceipt, document: Document, *, replay: bool) -> EntitlementGrant:
    return EntitlementGrant(
        identity=receipt.identity,
        document_id=receipt.document_id,
        blob_key=document.blob_key,
        content_type=document.content_type,
        original_file_name=document.original_file_name,
        file_name=receipt.file_name,
        coins_deducted=receipt.coins_deducted,
        replay=replay,
        purchased_at=receipt.created_at,
    )
