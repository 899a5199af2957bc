"""
WithdrawalService: вывод монет.

Монеты списываются сразу при создании заявки (hold). Approve: только смена
статуса. Reject: смена статуса + возврат ровно той суммы, что записана в заявке
(RedeemRefund), в одной транзакции.
"""
import logging
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.core.errors import (
    BelowMinimum,
    InvalidInput,
    InvalidStateTransition,
    WithdrawRequestNotFound,
)
from studymint.db.transaction import run_in_transaction
from studymint.models.ledger_entry import LedgerKind
from studymint.models.user import normalize_identity
from studymint.models.withdraw_request import WithdrawDecision, WithdrawRequest, WithdrawStatus
from studymint.services.ledger.service import LedgerService
from studymint.utils.metrics import metrics

logger = logging.getLogger(__name__)


class WithdrawalService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ledger: LedgerService,
        cfg: Settings = settings,
    ):
        self.session_factory = session_factory
        self.ledger = ledger
        self.cfg = cfg

    async def request_withdrawal(self, identity: str, amount: int, payout_address: str) -> WithdrawRequest:
        identity = normalize_identity(identity)
        if amount < self.cfg.min_withdrawal_coins:
            raise BelowMinimum(amount, self.cfg.min_withdrawal_coins)
        payout_address = (payout_address or "").strip()
        if not payout_address:
            raise InvalidInput("payout_address is required")

        async def _request(db: AsyncSession) -> WithdrawRequest:
            request = WithdrawRequest(id=str(uuid4()), identity=identity, amount=amount, payout_address=payout_address)
            db.add(request)
            # сначала списание: InsufficientBalance откатит и заявку
            await self.ledger.debit(db, identity, amount, LedgerKind.REDEEM, withdraw_request_id=request.id)
            await db.flush()
            return request

        request = await run_in_transaction(
            self.session_factory, _request, operation="withdraw_request", cfg=self.cfg
        )
        metrics.inc_withdrawal(WithdrawStatus.PENDING.value)
        logger.info(
            "withdraw_requested",
            extra={"identity": identity, "amount": amount, "withdraw_request_id": request.id},
        )
        return request

    async def resolve_withdrawal(self, request_id: str, decision: WithdrawDecision) -> WithdrawRequest:
        new_status = WithdrawStatus.APPROVED if decision == WithdrawDecision.APPROVE else WithdrawStatus.REJECTED

        async def _resolve(db: AsyncSession) -> WithdrawRequest:
            request = await db.get(WithdrawRequest, request_id)
            if request is None:
                raise WithdrawRequestNotFound(detail={"withdraw_request_id": request_id})
            now = datetime.now(timezone.utc)
            # условный переход: параллельный resolve той же заявки получит rowcount=0
            result = await db.execute(
                update(WithdrawRequest)
                .where(WithdrawRequest.id == request_id, WithdrawRequest.status == WithdrawStatus.PENDING.value)
                .values(status=new_status.value, resolved_at=now)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.refresh(request)
                raise InvalidStateTransition(
                    f"Withdraw request {request_id} is already {request.status}",
                    detail={"withdraw_request_id": request_id, "status": request.status},
                )
            if new_status == WithdrawStatus.REJECTED:
                await self.ledger.credit(
                    db, request.identity, request.amount, LedgerKind.REDEEM_REFUND, withdraw_request_id=request.id
                )
            await db.refresh(request)
            return request

        request = await run_in_transaction(
            self.session_factory, _resolve, operation="withdraw_resolve", cfg=self.cfg
        )
        metrics.inc_withdrawal(request.status)
        logger.info(
            "withdraw_resolved",
            extra={
                "identity": request.identity,
                "amount": request.amount,
                "withdraw_request_id": request.id,
                "status": request.status,
            },
        )
        return request

    async def list_for_user(self, identity: str) -> list[WithdrawRequest]:
        identity = normalize_identity(identity)
        async with self.session_factory() as db:
            rows = await db.scalars(
                select(WithdrawRequest)
                .where(WithdrawRequest.identity == identity)
                .order_by(WithdrawRequest.created_at.desc())
            )
            return list(rows)

    async def list_by_status(self, status: WithdrawStatus | None = None) -> list[WithdrawRequest]:
        """Для админки: по умолчанию все, старые первыми (очередь на обработку)."""
        query = select(WithdrawRequest)
        if status is not None:
            query = query.where(WithdrawRequest.status == status.value)
        async with self.session_factory() as db:
            rows = await db.scalars(query.order_by(WithdrawRequest.created_at))
            return list(rows)
