"""
LedgerService: баланс монет и append-only журнал.

credit/debit принимают сессию вызывающего и работают внутри его транзакции:
списание за скачивание, запись чека и строка журнала коммитятся вместе.
Баланс меняется одним UPDATE (balance = balance ± amount), поэтому
параллельные операции по одному пользователю не теряют обновлений,
а условие balance >= amount не даёт уйти в минус.
"""
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.errors import InsufficientBalance, UserNotFound
from studymint.models.ledger_entry import LedgerEntry, LedgerKind
from studymint.models.user import User, normalize_identity
from studymint.utils.metrics import metrics

logger = logging.getLogger(__name__)


class LedgerService:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    # ------------------------------------------------------------------
    # Mutations (inside caller's transaction)
    # ------------------------------------------------------------------

    async def credit(
        self,
        db: AsyncSession,
        identity: str,
        amount: int,
        kind: LedgerKind,
        *,
        document_id: str | None = None,
        withdraw_request_id: str | None = None,
    ) -> LedgerEntry:
        if amount <= 0:
            raise ValueError(f"credit amount must be positive, got {amount}")
        identity = normalize_identity(identity)
        result = await db.execute(
            update(User)
            .where(User.identity == identity)
            .values(balance=User.balance + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise UserNotFound(detail={"identity": identity})
        entry = await self._append(db, identity, amount, kind, document_id, withdraw_request_id)
        logger.info(
            "ledger_credit",
            extra={"identity": identity, "amount": amount, "kind": kind.value},
        )
        return entry

    async def debit(
        self,
        db: AsyncSession,
        identity: str,
        amount: int,
        kind: LedgerKind,
        *,
        document_id: str | None = None,
        withdraw_request_id: str | None = None,
    ) -> LedgerEntry:
        """Условное списание. InsufficientBalance: ничего не изменено."""
        if amount <= 0:
            raise ValueError(f"debit amount must be positive, got {amount}")
        identity = normalize_identity(identity)
        result = await db.execute(
            update(User)
            .where(User.identity == identity, User.balance >= amount)
            .values(balance=User.balance - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = await db.scalar(select(User.balance).where(User.identity == identity))
            if available is None:
                raise UserNotFound(detail={"identity": identity})
            metrics.inc_balance_rejected(kind.value)
            logger.info(
                "ledger_debit_rejected",
                extra={"identity": identity, "amount": amount, "kind": kind.value, "balance": available},
            )
            raise InsufficientBalance(identity, required=amount, available=available)
        entry = await self._append(db, identity, -amount, kind, document_id, withdraw_request_id)
        logger.info(
            "ledger_debit",
            extra={"identity": identity, "amount": amount, "kind": kind.value, "document_id": document_id},
        )
        return entry

    async def _append(
        self,
        db: AsyncSession,
        identity: str,
        amount: int,
        kind: LedgerKind,
        document_id: str | None,
        withdraw_request_id: str | None,
    ) -> LedgerEntry:
        entry = LedgerEntry(
            identity=identity,
            kind=kind.value,
            amount=amount,
            document_id=document_id,
            withdraw_request_id=withdraw_request_id,
        )
        db.add(entry)
        await db.flush()
        metrics.inc_ledger_operation(kind.value)
        return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def balance(self, identity: str) -> int:
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            value = await db.scalar(select(User.balance).where(User.identity == identity))
        if value is None:
            raise UserNotFound(detail={"identity": identity})
        return value

    async def history(self, identity: str) -> list[LedgerEntry]:
        """Записи журнала в порядке вставки."""
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            exists = await db.scalar(select(User.identity).where(User.identity == identity))
            if exists is None:
                raise UserNotFound(detail={"identity": identity})
            rows = await db.scalars(
                select(LedgerEntry).where(LedgerEntry.identity == identity).order_by(LedgerEntry.id)
            )
            return list(rows)

    async def reconcile(self, identity: str) -> tuple[int, int]:
        """(balance, сумма журнала). Для аудита: значения обязаны совпадать."""
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            balance = await db.scalar(select(User.balance).where(User.identity == identity))
            if balance is None:
                raise UserNotFound(detail={"identity": identity})
            total = await db.scalar(
                select(func.coalesce(func.sum(LedgerEntry.amount), 0)).where(LedgerEntry.identity == identity)
            )
        if balance != total:
            logger.error(
                "ledger_reconcile_mismatch",
                extra={"identity": identity, "balance": balance, "amount": total},
            )
        return balance, int(total)
