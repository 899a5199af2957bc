"""
JSON-логи: одна строка на событие, message = имя события ("paywall_download_granted"),
контекст из extra={...} по белому списку полей.
"""
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler

from studymint.core.config import Settings, settings

# Логгеры библиотек, которые на INFO пишут по строке на запрос/SQL-выражение
NOISY_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "uvicorn.access", "multipart")


def _json_default(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class JsonFormatter(logging.Formatter):
    """JSON log formatter with support for extra fields."""

    EXTRA_FIELDS = (
        # кто / что
        "identity", "document_id", "withdraw_request_id", "blob_key",
        # деньги
        "amount", "balance", "kind", "replay", "status",
        # pipeline
        "pages_total", "pages_out", "reason",
        # HTTP и хранилище
        "request_id", "path", "method", "status_code", "operation", "attempt", "error",
    )

    def __init__(self, app_env: str | None = None):
        super().__init__()
        self.app_env = app_env

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            # время события, а не время форматирования
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.app_env:
            payload["env"] = self.app_env

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info:
            exc = record.exc_info[1]
            payload["exception_type"] = type(exc).__name__
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=_json_default)


def configure_logging(cfg: Settings = settings) -> list[logging.Handler]:
    """Заменить handlers корневого логгера на JSON (stderr + опционально файл с ротацией)."""
    formatter = JsonFormatter(app_env=cfg.app_env)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if cfg.log_file:
        handlers.append(
            RotatingFileHandler(
                cfg.log_file,
                maxBytes=cfg.log_max_bytes,
                backupCount=cfg.log_backup_count,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(cfg.log_level.upper())
    root.handlers = handlers
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handlers
