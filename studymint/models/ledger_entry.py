"""
LedgerEntry: append-only журнал изменений баланса.
Сумма amount по пользователю всегда равна users.balance.
"""
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from studymint.db.base import Base


class LedgerKind(str, Enum):
    SIGNUP_BONUS = "SignupBonus"
    REDEEM = "Redeem"
    REDEEM_REFUND = "RedeemRefund"
    DOWNLOAD = "Download"


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    # autoincrement id = порядок вставки (история отдаётся в нём)
    id = Column(Integer, primary_key=True, autoincrement=True)
    identity = Column(String, ForeignKey("users.identity"), nullable=False, index=True)
    kind = Column(String, nullable=False)  # LedgerKind value
    amount = Column(Integer, nullable=False)  # signed: + credit, - debit
    document_id = Column(String, nullable=True)
    withdraw_request_id = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
