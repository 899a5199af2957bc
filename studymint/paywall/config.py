"""
Paywall config: типизированная обёртка над Settings для цен и watermark.
Все getters принимают cfg (по умолчанию глобальные settings), чтобы приложение
и тесты могли подставить свои настройки.
"""
from __future__ import annotations

from studymint.core.config import Settings, settings


def get_download_cost(cfg: Settings = settings) -> int:
    return cfg.download_cost_coins


def get_preview_page_count(cfg: Settings = settings) -> int:
    return cfg.preview_page_count


def get_watermark_text(cfg: Settings = settings) -> str:
    return cfg.watermark_text


def get_watermark_text_opacity(cfg: Settings = settings) -> float:
    return cfg.watermark_text_opacity


def get_brand_image_path(cfg: Settings = settings) -> str:
    return cfg.brand_image_path


def get_brand_image_opacity(cfg: Settings = settings) -> float:
    return cfg.brand_image_opacity


def get_identity_caption(identity: str, cfg: Settings = settings) -> str:
    return cfg.identity_caption_template.format(identity=identity)


def get_identity_caption_opacity(cfg: Settings = settings) -> float:
    return cfg.identity_caption_opacity


def get_cta_texts(cfg: Settings = settings) -> tuple[str, list[str]]:
    """Заголовок и строки страницы «превью закончилось»; {total}/{shown} подставляет pipeline."""
    return cfg.preview_cta_title, [cfg.preview_cta_body, cfg.preview_cta_action]
