"""
Закрытый набор ошибок ядра (ledger, entitlement, pipeline).
Вызывающий код ветвится по ErrorKind, а не по тексту сообщения.
"""
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Типы ошибок, видимые на границе сервиса."""

    NOT_FOUND = "not_found"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    BELOW_MINIMUM = "below_minimum"
    INVALID_STATE = "invalid_state"
    PREVIEW_UNAVAILABLE = "preview_unavailable"
    TRANSIENT = "transient"  # единственный вид, который можно ретраить


# Стабильные сообщения для клиента
ERROR_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.NOT_FOUND: "Item not found",
    ErrorKind.INSUFFICIENT_BALANCE: "You don't have enough balance",
    ErrorKind.BELOW_MINIMUM: "Amount is below the minimum withdrawal",
    ErrorKind.INVALID_STATE: "Request was already processed",
    ErrorKind.PREVIEW_UNAVAILABLE: "Preview is not available for this document",
    ErrorKind.TRANSIENT: "Temporary problem, please try again",
}


class StudyMintError(Exception):
    """Base error; detail holds structured context for logging."""

    kind: ErrorKind = ErrorKind.NOT_FOUND
    retryable: bool = False

    def __init__(self, message: str | None = None, detail: dict[str, Any] | None = None):
        super().__init__(message or ERROR_MESSAGES[self.kind])
        self.detail = detail or {}

    @property
    def public_message(self) -> str:
        return ERROR_MESSAGES[self.kind]


class NotFoundError(StudyMintError):
    kind = ErrorKind.NOT_FOUND


class DocumentNotFound(NotFoundError):
    pass


class UserNotFound(NotFoundError):
    pass


class WithdrawRequestNotFound(NotFoundError):
    pass


class InsufficientBalance(StudyMintError):
    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, identity: str, required: int, available: int | None = None):
        super().__init__(
            f"Insufficient balance for {identity}: required {required}, available {available}",
            detail={"identity": identity, "required": required, "available": available},
        )
        self.required = required
        self.available = available


class BelowMinimum(StudyMintError):
    kind = ErrorKind.BELOW_MINIMUM

    def __init__(self, amount: int, minimum: int):
        super().__init__(
            f"Withdrawal amount {amount} is below minimum {minimum}",
            detail={"amount": amount, "minimum": minimum},
        )
        self.amount = amount
        self.minimum = minimum


class InvalidStateTransition(StudyMintError):
    kind = ErrorKind.INVALID_STATE


class PreviewUnavailable(StudyMintError):
    kind = ErrorKind.PREVIEW_UNAVAILABLE


class TransientStorageError(StudyMintError):
    """Хранилище недоступно / таймаут. Повтор безопасен: выдача доступа идемпотентна."""

    kind = ErrorKind.TRANSIENT
    retryable = True


class PipelineDegraded(Exception):
    """
    Водяной знак не удалось наложить полностью (нет логотипа и т.п.).
    Не выходит за пределы pipeline: логируется, выдача продолжается.
    """


class InvalidInput(ValueError):
    """Некорректный ввод клиента; текст сообщения безопасно отдавать наружу (HTTP 400)."""
