"""
EntitlementService: не больше одного списания на (identity, document), в том числе при гонке.
"""
import asyncio
import unittest

from testkit import ServiceHarness

from studymint.core.errors import DocumentNotFound, InsufficientBalance, UserNotFound
from studymint.models.ledger_entry import LedgerKind


class TestRequestDownload(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.h = await ServiceHarness.start()
        self.access = self.h.services.entitlements
        self.ledger = self.h.services.ledger
        await self.h.register("alice@example.com")
        self.doc = await self.h.upload_pdf(name="Notes.PDF", display_name="Notes")

    async def asyncTearDown(self):
        await self.h.stop()

    async def test_first_download_charges_and_creates_receipt(self):
        grant = await self.access.request_download("alice@example.com", self.doc.id)

        self.assertFalse(grant.replay)
        self.assertEqual(grant.coins_deducted, 10)
        self.assertEqual(grant.blob_key, self.doc.blob_key)
        self.assertEqual(grant.file_name, "Notes.pdf")
        self.assertEqual(await self.ledger.balance("alice@example.com"), 40)
        last = (await self.ledger.history("alice@example.com"))[-1]
        self.assertEqual((last.kind, last.amount, last.document_id), (LedgerKind.DOWNLOAD.value, -10, self.doc.id))

        receipts = await self.access.list_receipts("alice@example.com")
        self.assertEqual([r.document_id for r in receipts], [self.doc.id])

    async def test_repeat_download_is_free_replay(self):
        await self.access.request_download("alice@example.com", self.doc.id)
        again = await self.access.request_download("Alice@example.com", self.doc.id)

        self.assertTrue(again.replay)
        self.assertEqual(again.coins_deducted, 10)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 40)
        self.assertEqual(len(await self.ledger.history("alice@example.com")), 2)

    async def test_insufficient_balance_leaves_no_trace(self):
        await self.h.register("bob@example.com")
        self.access.download_cost = 60

        with self.assertRaises(InsufficientBalance):
            await self.access.request_download("bob@example.com", self.doc.id)
        self.assertEqual(await self.ledger.balance("bob@example.com"), 50)
        self.assertEqual(await self.access.list_receipts("bob@example.com"), [])

    async def test_unknown_document_and_user(self):
        with self.assertRaises(DocumentNotFound):
            await self.access.request_download("alice@example.com", "missing")
        with self.assertRaises(UserNotFound):
            await self.access.request_download("ghost@example.com", self.doc.id)

    async def test_free_document_writes_receipt_without_ledger_entry(self):
        self.access.download_cost = 0
        grant = await self.access.request_download("alice@example.com", self.doc.id)

        self.assertFalse(grant.replay)
        self.assertEqual(grant.coins_deducted, 0)
        self.assertEqual(len(await self.ledger.history("alice@example.com")), 1)

    async def test_concurrent_same_document_charges_once(self):
        # вся стоимость = весь баланс: двойное списание упало бы в InsufficientBalance
        self.access.download_cost = 50
        grants = await asyncio.gather(
            *(self.access.request_download("alice@example.com", self.doc.id) for _ in range(3))
        )

        self.assertEqual(sum(1 for g in grants if not g.replay), 1)
        self.assertEqual(sum(g.replay for g in grants), 2)
        downloads = [
            e for e in await self.ledger.history("alice@example.com") if e.kind == LedgerKind.DOWNLOAD
        ]
        self.assertEqual(len(downloads), 1)
        self.assertEqual(downloads[0].document_id, self.doc.id)
        self.assertEqual(len(await self.access.list_receipts("alice@example.com")), 1)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 0)
        balance, total = await self.ledger.reconcile("alice@example.com")
        self.assertEqual(balance, total)

    async def test_concurrent_different_documents_share_one_balance(self):
        other = await self.h.upload_pdf(pages=2, name="Other.pdf")
        self.access.download_cost = 30

        results = await asyncio.gather(
            self.access.request_download("alice@example.com", self.doc.id),
            self.access.request_download("alice@example.com", other.id),
            return_exceptions=True,
        )

        self.assertEqual(sum(1 for r in results if isinstance(r, InsufficientBalance)), 1)
        self.assertEqual(await self.ledger.balance("alice@example.com"), 20)
        self.assertEqual(len(await self.access.list_receipts("alice@example.com")), 1)


if __name__ == "__main__":
    unittest.main()
