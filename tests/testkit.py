"""
Общие заготовки для тестов: PDF на лету (pypdf) и изолированная SQLite-база во временной папке.
"""
import asyncio
import io
import os
import tempfile

from pypdf import PdfWriter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings
from studymint.db.session import build_engine, build_session_factory, init_models
from studymint.services.container import Services, build_services
from studymint.storage.local import LocalBlobStore


def make_pdf(pages: int = 3, width: float = 612, height: float = 792) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=width, height=height)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def make_settings(tmp_dir: str, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{os.path.join(tmp_dir, 'test.db')}",
        "blob_storage_path": os.path.join(tmp_dir, "blobs"),
        "admin_api_key": "test-admin-key",
        "storage_retry_backoff_seconds": 0.01,
    }
    values.update(overrides)
    return Settings(**values)


class ServiceHarness:
    """
    Сервисы поверх свежей базы. Использование в IsolatedAsyncioTestCase:
    asyncSetUp: self.h = await ServiceHarness.start(); asyncTearDown: await self.h.stop().
    """

    def __init__(self, tmp: tempfile.TemporaryDirectory, cfg: Settings, engine, services: Services):
        self._tmp = tmp
        self.cfg = cfg
        self.engine = engine
        self.services = services

    @classmethod
    async def start(cls, **overrides) -> "ServiceHarness":
        tmp = tempfile.TemporaryDirectory()
        cfg = make_settings(tmp.name, **overrides)
        engine = build_engine(cfg=cfg)
        await init_models(engine)
        services = build_services(build_session_factory(engine), LocalBlobStore(cfg.blob_storage_path), cfg)
        return cls(tmp, cfg, engine, services)

    async def stop(self) -> None:
        await self.engine.dispose()
        self._tmp.cleanup()

    async def register(self, identity: str) -> None:
        await self.services.users.get_or_create_user(identity)

    async def upload_pdf(self, pages: int = 3, name: str = "Notes.pdf", **kwargs):
        return await self.services.documents.upload(name, make_pdf(pages), "application/pdf", **kwargs)


def session_factory_with(engine, session_class):
    """Session factory на том же engine, но с другим классом сессии (подмена commit в тестах)."""
    return async_sessionmaker(bind=engine, class_=session_class, autoflush=False, expire_on_commit=False)


class SlowAckSession(AsyncSession):
    """Commit проходит, но подтверждение приходит с задержкой (медленная сеть до БД)."""

    ack_delay = 0.5

    async def commit(self) -> None:
        await super().commit()
        await asyncio.sleep(self.ack_delay)
