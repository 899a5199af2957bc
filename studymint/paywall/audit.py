"""
Аудит скачиваний: record_download вызывается после того, как файл подготовлен к отдаче.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def record_download(
    identity: str,
    document_id: str,
    *,
    coins_deducted: int,
    replay: bool,
    watermarked: bool,
    degraded: list[str] | None = None,
) -> None:
    """Записать событие выдачи документа для аналитики."""
    logger.info(
        "paywall_download_delivered",
        extra={
            "identity": identity,
            "document_id": document_id,
            "amount": 0 if replay else coins_deducted,
            "replay": replay,
            "status": "watermarked" if watermarked else "original",
            "reason": ",".join(degraded) if degraded else None,
        },
    )
