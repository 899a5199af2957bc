from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Integer, String

from studymint.db.base import Base


class Document(Base):
    """Документ каталога. Создаётся при загрузке и больше не меняется."""

    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    display_name = Column(String, nullable=False)
    blob_key = Column(String, nullable=False)
    original_file_name = Column(String, nullable=False)
    content_type = Column(String, nullable=False, default="application/octet-stream")
    byte_size = Column(Integer, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    uploader_kind = Column(String, nullable=False, default="admin")  # admin | user
    uploader_identity = Column(String, nullable=True)
    category = Column(String, nullable=True, index=True)
    section = Column(String, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
