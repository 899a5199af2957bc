"""
Зависимости FastAPI: сервисы и настройки из app.state, identity из заголовка, проверка admin key.
Identity проставляет провайдер аутентификации перед сервисом; здесь ему доверяем.
"""
import hmac

from fastapi import HTTPException, Request, status

from studymint.core.config import Settings
from studymint.models.user import normalize_identity
from studymint.services.container import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(request: Request) -> str:
    cfg = get_settings(request)
    identity = normalize_identity(request.headers.get(cfg.identity_header, ""))
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {cfg.identity_header} header",
        )
    return identity


def require_admin(request: Request) -> None:
    cfg = get_settings(request)
    expected = cfg.admin_api_key
    provided = request.headers.get(cfg.admin_key_header, "")
    if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin key required")
