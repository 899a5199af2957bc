"""
WithdrawalService: hold при заявке, возврат при отклонении, одно решение на заявку.
"""
import asyncio
import unittest

from testkit import ServiceHarness, SlowAckSession, session_factory_with

from studymint.core.errors import (
    BelowMinimum,
    InsufficientBalance,
    InvalidInput,
    InvalidStateTransition,
    WithdrawRequestNotFound,
)
from studymint.models.ledger_entry import LedgerKind
from studymint.models.withdraw_request import WithdrawDecision, WithdrawStatus
from studymint.services.ledger.service import LedgerService
from studymint.services.withdrawals.service import WithdrawalService


class TestWithdrawals(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.h = await ServiceHarness.start()
        self.withdrawals = self.h.services.withdrawals
        self.ledger = self.h.services.ledger
        await self.h.register("alice@example.com")

    async def asyncTearDown(self):
        await self.h.stop()

    async def test_hold_then_reject_refunds_exact_amount(self):
        with self.assertRaises(InsufficientBalance):
            await self.withdrawals.request_withdrawal("alice@example.com", 60, "alice@upi")
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)

        request = await self.withdrawals.request_withdrawal("alice@example.com", 40, "alice@upi")
        self.assertEqual(request.status, WithdrawStatus.PENDING.value)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 10)

        rejected = await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.REJECT)
        self.assertEqual(rejected.status, WithdrawStatus.REJECTED.value)
        self.assertIsNotNone(rejected.resolved_at)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)

        history = await self.ledger.history("alice@example.com")
        self.assertEqual(
            [(e.kind, e.amount) for e in history],
            [
                (LedgerKind.SIGNUP_BONUS.value, 50),
                (LedgerKind.REDEEM.value, -40),
                (LedgerKind.REDEEM_REFUND.value, 40),
            ],
        )
        self.assertEqual(history[1].withdraw_request_id, request.id)
        self.assertEqual(history[2].withdraw_request_id, request.id)

    async def test_approve_keeps_coins_debited(self):
        request = await self.withdrawals.request_withdrawal("alice@example.com", 20, "alice@upi")
        approved = await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.APPROVE)

        self.assertEqual(approved.status, WithdrawStatus.APPROVED.value)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 30)
        self.assertEqual(len(await self.ledger.history("alice@example.com")), 2)

    async def test_resolved_request_cannot_be_resolved_again(self):
        request = await self.withdrawals.request_withdrawal("alice@example.com", 30, "alice@upi")
        await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.REJECT)

        with self.assertRaises(InvalidStateTransition):
            await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.REJECT)
        with self.assertRaises(InvalidStateTransition):
            await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.APPROVE)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)

    async def test_concurrent_rejects_refund_once(self):
        request = await self.withdrawals.request_withdrawal("alice@example.com", 30, "alice@upi")
        results = await asyncio.gather(
            *(self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.REJECT) for _ in range(3)),
            return_exceptions=True,
        )

        self.assertEqual(sum(1 for r in results if isinstance(r, InvalidStateTransition)), 2)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)

    async def test_below_minimum(self):
        with self.assertRaises(BelowMinimum) as ctx:
            await self.withdrawals.request_withdrawal("alice@example.com", 19, "alice@upi")
        self.assertEqual(ctx.exception.minimum, 20)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)

    async def test_empty_payout_address(self):
        with self.assertRaises(InvalidInput):
            await self.withdrawals.request_withdrawal("alice@example.com", 20, "  ")

    async def test_unknown_request(self):
        with self.assertRaises(WithdrawRequestNotFound):
            await self.withdrawals.resolve_withdrawal("missing", WithdrawDecision.APPROVE)

    async def test_listings(self):
        await self.h.register("bob@example.com")
        first = await self.withdrawals.request_withdrawal("alice@example.com", 20, "alice@upi")
        await self.withdrawals.request_withdrawal("bob@example.com", 25, "bob@upi")
        await self.withdrawals.resolve_withdrawal(first.id, WithdrawDecision.APPROVE)

        mine = await self.withdrawals.list_for_user("alice@example.com")
        self.assertEqual([r.id for r in mine], [first.id])
        pending = await self.withdrawals.list_by_status(WithdrawStatus.PENDING)
        self.assertEqual([r.identity for r in pending], ["bob@example.com"])
        self.assertEqual(len(await self.withdrawals.list_by_status()), 2)


class TestWithdrawalsSlowCommit(unittest.IsolatedAsyncioTestCase):
    """Подтверждение commit дольше таймаута тела: операция применяется ровно один раз."""

    async def asyncSetUp(self):
        self.h = await ServiceHarness.start(storage_timeout_seconds=0.3, storage_retry_attempts=2)
        await self.h.register("alice@example.com")
        factory = session_factory_with(self.h.engine, SlowAckSession)
        self.ledger = LedgerService(factory)
        self.withdrawals = WithdrawalService(factory, self.ledger, self.h.cfg)

    async def asyncTearDown(self):
        await self.h.stop()

    async def test_request_not_duplicated(self):
        request = await self.withdrawals.request_withdrawal("alice@example.com", 20, "alice@upi")

        self.assertEqual(request.status, WithdrawStatus.PENDING.value)
        self.assertEqual(len(await self.withdrawals.list_for_user("alice@example.com")), 1)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 30)
        redeems = [e for e in await self.ledger.history("alice@example.com") if e.kind == LedgerKind.REDEEM.value]
        self.assertEqual(len(redeems), 1)

    async def test_reject_succeeds_once(self):
        request = await self.withdrawals.request_withdrawal("alice@example.com", 20, "alice@upi")
        rejected = await self.withdrawals.resolve_withdrawal(request.id, WithdrawDecision.REJECT)

        self.assertEqual(rejected.status, WithdrawStatus.REJECTED.value)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 50)


if __name__ == "__main__":
    unittest.main()
