"""
Exception handlers: StudyMintError -> {"error": kind, "message": ...} со статусом по ErrorKind.
InvalidInput -> 400 с текстом ошибки. Прочие исключения уходят в 500 без деталей.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from studymint.core.errors import ErrorKind, InvalidInput, StudyMintError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.BELOW_MINIMUM: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.PREVIEW_UNAVAILABLE: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def studymint_error_handler(request: Request, exc: StudyMintError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.info(
        "request_rejected",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": status_code,
            "kind": exc.kind.value,
            "error": str(exc),
        },
    )
    headers = None
    if exc.retryable:
        headers = {"Retry-After": "1"}
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind.value, "message": exc.public_message},
        headers=headers,
    )


async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    logger.info(
        "request_invalid",
        extra={"path": request.url.path, "method": request.method, "status_code": 400, "error": str(exc)},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_request", "message": str(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudyMintError, studymint_error_handler)
    app.add_exception_handler(InvalidInput, invalid_input_handler)
