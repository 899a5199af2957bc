"""
Атомарная единица работы: одна сессия, одна транзакция, ограниченное время.

Таймаут ограничивает только тело fn(db); commit идёт вне таймаута.
Операционные ошибки БД (блокировка, обрыв соединения) и таймауты тела ретраятся
с линейным backoff; после исчерпания бюджета TransientStorageError.
После начала commit повторов нет: результат commit неизвестен, и повтор
мог бы применить неидемпотентную операцию (заявку на вывод) второй раз.
Доменные ошибки (InsufficientBalance и т.п.) и IntegrityError не ретраятся:
транзакция откатывается, исключение уходит вызывающему.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.core.errors import TransientStorageError
from studymint.utils.metrics import metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _CommitFailed(Exception):
    """Ошибка на commit: транзакция могла примениться, повторять нельзя."""


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, asyncio.TimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    fn: Callable[[AsyncSession], Awaitable[T]],
    *,
    operation: str,
    cfg: Settings = settings,
) -> T:
    """Выполнить fn(db) внутри транзакции; commit при успехе, rollback при любой ошибке."""
    max_attempts = max(1, cfg.storage_retry_attempts)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await _run_once(session_factory, fn, cfg.storage_timeout_seconds)
        except _CommitFailed as exc:
            cause = exc.__cause__
            logger.error(
                "storage_commit_failed",
                extra={"operation": operation, "attempt": attempt, "error": str(cause)},
            )
            raise TransientStorageError(detail={"operation": operation}) from cause
        except (DBAPIError, asyncio.TimeoutError) as exc:
            if not _is_transient(exc):
                raise
            metrics.inc_transient_retry(operation)
            if attempt >= max_attempts:
                logger.error(
                    "storage_transient_exhausted",
                    extra={"operation": operation, "attempt": attempt, "error": str(exc)},
                )
                raise TransientStorageError(detail={"operation": operation}) from exc
            logger.warning(
                "storage_transient_retry",
                extra={"operation": operation, "attempt": attempt, "error": str(exc)},
            )
            await asyncio.sleep(cfg.storage_retry_backoff_seconds * attempt)


async def _run_once(
    session_factory: async_sessionmaker[AsyncSession],
    fn: Callable[[AsyncSession], Awaitable[T]],
    timeout: float,
) -> T:
    # незакоммиченная транзакция откатывается при закрытии сессии
    async with session_factory() as db:
        result = await asyncio.wait_for(fn(db), timeout=timeout)
        try:
            await db.commit()
        except DBAPIError as exc:
            raise _CommitFailed() from exc
        return result
