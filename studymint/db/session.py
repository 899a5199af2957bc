from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from studymint.core.config import Settings, settings
from studymint.db.base import Base


def build_engine(database_url: str | None = None, cfg: Settings = settings) -> AsyncEngine:
    url = database_url or cfg.database_url
    engine_kwargs: dict[str, Any] = {
        "echo": cfg.database_echo,
        "pool_pre_ping": True,
    }
    if url.startswith("sqlite"):
        # busy timeout: concurrent writers wait for the lock instead of failing
        engine_kwargs["connect_args"] = {"timeout": cfg.sqlite_busy_timeout}
    else:
        engine_kwargs.update(
            pool_size=cfg.db_pool_size,
            max_overflow=cfg.db_max_overflow,
            pool_recycle=cfg.db_pool_recycle,  # recycle connections (avoid stale)
            pool_timeout=30,
        )
    return create_async_engine(url, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    # Register all tables on Base.metadata
    import studymint.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as db:
        await db.execute(text("SELECT 1"))


