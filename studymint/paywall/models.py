"""
DTO paywall: EntitlementGrant (результат access), DeliveryResult (результат delivery).
"""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class EntitlementGrant(BaseModel):
    """Право на скачивание (identity, document). replay=True: куплено раньше, без списания."""

    identity: str
    document_id: str
    blob_key: str
    content_type: str
    original_file_name: str
    file_name: str = Field(..., description="Имя вложения для Content-Disposition")
    coins_deducted: int = Field(..., description="Сколько списано при первой покупке")
    replay: bool = False
    purchased_at: datetime

    model_config = {"frozen": True}


class DeliveryResult(BaseModel):
    """Готовые байты для отдачи клиенту."""

    content: bytes
    file_name: str
    media_type: str
    is_preview: bool = False
    watermarked: bool = Field(..., description="False = отдан оригинал без изменений")
    replay: bool = False
    degraded: list[str] = Field(
        default_factory=list,
        description="Шаги водяного знака, которые пропущены (PipelineDegraded)",
    )

    model_config = {"frozen": True}
