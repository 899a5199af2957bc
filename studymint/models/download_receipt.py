"""
DownloadReceipt: признак «уже куплено». Уникальная пара (identity, document_id)
и есть гарантия идемпотентности: второй раз не списываем.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String

from studymint.db.base import Base


class DownloadReceipt(Base):
    __tablename__ = "download_receipts"

    identity = Column(String, ForeignKey("users.identity"), primary_key=True)
    document_id = Column(String, ForeignKey("documents.id"), primary_key=True)
    file_name = Column(String, nullable=False)
    coins_deducted = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
