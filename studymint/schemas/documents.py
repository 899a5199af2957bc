from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class DocumentCreate(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=255)
    blob_key: str
    original_file_name: str
    content_type: str = "application/octet-stream"
    byte_size: int = Field(..., ge=0)
    uploader_kind: Literal["admin", "user"] = "admin"
    uploader_identity: str | None = None
    category: str | None = None
    section: str | None = None
    tags: list[str] = Field(default_factory=list)


class DocumentOut(BaseModel):
    id: str
    display_name: str
    original_file_name: str
    content_type: str
    byte_size: int
    uploaded_at: datetime
    uploader_kind: str
    category: str | None = None
    section: str | None = None
    tags: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}
