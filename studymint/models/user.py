from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String

from studymint.db.base import Base


def normalize_identity(identity: str) -> str:
    """Identity приходит от провайдера как есть; храним в нижнем регистре без пробелов."""
    return (identity or "").strip().lower()


class User(Base):
    __tablename__ = "users"
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),)

    identity = Column(String, primary_key=True)  # e-mail, case-normalized
    # NB: меняется только через LedgerService (credit/debit), никогда напрямую.
    balance = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
