"""
Сборка сервисов поверх одной session factory и одного blob store.
Используется lifespan'ом приложения и тестами.
"""
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from studymint.core.config import Settings, settings
from studymint.paywall.access import EntitlementService
from studymint.paywall.delivery import DocumentDeliveryService
from studymint.services.documents.service import DocumentRegistry
from studymint.services.ledger.service import LedgerService
from studymint.services.users.service import UserService
from studymint.services.withdrawals.service import WithdrawalService
from studymint.storage.base import BlobStore


@dataclass
class Services:
    session_factory: async_sessionmaker[AsyncSession]
    ledger: LedgerService
    users: UserService
    documents: DocumentRegistry
    entitlements: EntitlementService
    delivery: DocumentDeliveryService
    withdrawals: WithdrawalService


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    blob_store: BlobStore,
    cfg: Settings = settings,
) -> Services:
    ledger = LedgerService(session_factory)
    documents = DocumentRegistry(session_factory, blob_store, cfg)
    entitlements = EntitlementService(session_factory, ledger, cfg=cfg)
    return Services(
        session_factory=session_factory,
        ledger=ledger,
        users=UserService(session_factory, ledger, cfg),
        documents=documents,
        entitlements=entitlements,
        delivery=DocumentDeliveryService(documents, entitlements, cfg),
        withdrawals=WithdrawalService(session_factory, ledger, cfg),
    )
