from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String

from studymint.db.base import Base


class WithdrawStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class WithdrawDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class WithdrawRequest(Base):
    """Заявка на вывод монет. Pending -> Approved | Rejected, обратно нельзя."""

    __tablename__ = "withdraw_requests"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_withdraw_amount_positive"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    identity = Column(String, ForeignKey("users.identity"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # списано при создании; при reject возвращается ровно оно
    payout_address = Column(String, nullable=False)  # UPI / кошелёк: для админа, ядро не проверяет
    status = Column(String, nullable=False, default=WithdrawStatus.PENDING.value, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    resolved_at = Column(DateTime(timezone=True), nullable=True)
