"""
Обёртка над studymint.utils.watermark: параметры из paywall config,
деградация до текста при отсутствии логотипа.
Функции синхронные (CPU-bound), delivery вызывает их через asyncio.to_thread.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from studymint.core.config import Settings, settings
from studymint.core.errors import PipelineDegraded
from studymint.paywall.config import (
    get_brand_image_opacity,
    get_brand_image_path,
    get_cta_texts,
    get_identity_caption,
    get_identity_caption_opacity,
    get_preview_page_count,
    get_watermark_text,
    get_watermark_text_opacity,
)
from studymint.utils.metrics import metrics
from studymint.utils.watermark import BrandImage, PdfOutput, build_preview, load_brand_image, stamp_full

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _cached_brand(path: str) -> BrandImage:
    # исключения не кэшируются: появившийся файл подхватится при следующем вызове
    return load_brand_image(path)


def load_brand(cfg: Settings = settings) -> BrandImage | None:
    """Логотип из конфига или None (PipelineDegraded логируется, наружу не выходит)."""
    try:
        return _cached_brand(get_brand_image_path(cfg))
    except PipelineDegraded as exc:
        metrics.inc_pipeline_degraded("brand_asset")
        logger.warning("pipeline_degraded", extra={"reason": str(exc)})
        return None


def make_preview(content: bytes, cfg: Settings = settings) -> PdfOutput:
    title, lines = get_cta_texts(cfg)
    return build_preview(
        content,
        page_limit=get_preview_page_count(cfg),
        watermark_text=get_watermark_text(cfg),
        text_opacity=get_watermark_text_opacity(cfg),
        brand=load_brand(cfg),
        brand_opacity=get_brand_image_opacity(cfg),
        cta_title=title,
        cta_lines=lines,
    )


def make_full_copy(content: bytes, identity: str, cfg: Settings = settings) -> PdfOutput:
    return stamp_full(
        content,
        caption=get_identity_caption(identity, cfg),
        caption_opacity=get_identity_caption_opacity(cfg),
        brand=load_brand(cfg),
        brand_opacity=get_brand_image_opacity(cfg),
    )
