"""
Application configuration.
All settings are loaded from environment variables (or .env).
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Defaults are suitable for local development (SQLite file + local blob dir).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # Игнорировать неизвестные поля из .env
    )

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: через запятую. Пусто = дефолтный список в коде.
    cors_origins: str = ""

    # ===========================================
    # DATABASE
    # ===========================================
    # postgresql+asyncpg://... в проде, sqlite+aiosqlite:///... локально и в тестах
    database_url: str = "sqlite+aiosqlite:///./studymint.db"
    database_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_recycle: int = 1800
    # SQLite busy timeout (seconds): сколько писатель ждёт чужую транзакцию
    sqlite_busy_timeout: float = 15.0
    # Создавать таблицы при старте (без миграций)
    auto_create_schema: bool = True

    # Каждая атомарная операция с хранилищем ограничена по времени и ретраится
    storage_timeout_seconds: float = 10.0
    storage_retry_attempts: int = 3
    storage_retry_backoff_seconds: float = 0.2

    # ===========================================
    # BLOB STORAGE
    # ===========================================
    blob_storage_path: str = "/data/studymint/blobs"
    max_upload_size_mb: int = 50

    # ===========================================
    # COINS
    # ===========================================
    signup_bonus_coins: int = 50
    download_cost_coins: int = 10
    min_withdrawal_coins: int = 20

    # ===========================================
    # PREVIEW & WATERMARK
    # ===========================================
    preview_page_count: int = 5
    watermark_text: str = "StudyMint Preview"
    watermark_text_opacity: float = 0.5
    # PNG/JPG логотип для диагонального водяного знака. Пусто = только текст.
    brand_image_path: str = ""
    brand_image_opacity: float = 0.2
    identity_caption_template: str = "Downloaded by: {identity}"
    identity_caption_opacity: float = 0.6
    preview_cta_title: str = "Preview ended"
    preview_cta_body: str = "This document has {total} pages. You have seen the first {shown}."
    preview_cta_action: str = "Download the full document with StudyMint coins to keep reading."

    # ===========================================
    # HTTP
    # ===========================================
    # Identity приходит от провайдера аутентификации перед сервисом
    identity_header: str = "X-Identity"
    admin_key_header: str = "X-Admin-Key"
    admin_api_key: str | None = None

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("watermark_text_opacity", "brand_image_opacity", "identity_caption_opacity")
    @classmethod
    def validate_opacity(cls, v: float) -> float:
        """Opacity is a PDF /ca value."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("opacity must be between 0 and 1")
        return v

    @field_validator("signup_bonus_coins", "download_cost_coins", "min_withdrawal_coins", "preview_page_count")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be non-negative")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


settings = Settings()
