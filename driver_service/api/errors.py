# driver_service/api/errors.py
"""
Перевод ошибок домена в HTTP ответы.
Формат тела: {"error": сообщение, "details": [...], "code": статус}.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from driver_service.common.constants import TypeMsg
from driver_service.common.logger import log_error, log_info
from driver_service.core.drivers.errors import (
    DriverConflictError,
    DriverNotFoundError,
    DriverServiceError,
    InvalidDriverIDError,
    InvalidLocationError,
    InvalidTaxiTypeError,
    ValidationFailedError,
)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ApiError(Exception):
    """Ошибка разбора HTTP запроса (до вызова сервиса)."""

    def __init__(self, status_code: int, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details or []


def error_response(status_code: int, message: str, details: list[str] | None = None) -> JSONResponse:
    """Формирует JSON ответ с ошибкой."""
    content: dict[str, Any] = {
        "error": message,
        "details": details or [],
        "code": status_code,
    }
    return JSONResponse(status_code=status_code, content=content)


def translate_error(exc: DriverServiceError) -> tuple[int, str, list[str]]:
    """
    Определяет HTTP статус и сообщение для ошибки домена.

    Returns:
        (статус, сообщение, детали)
    """
    match exc:
        case ValidationFailedError():
            return status.HTTP_400_BAD_REQUEST, exc.message, exc.details
        case DriverNotFoundError():
            return status.HTTP_404_NOT_FOUND, "Driver not found", []
        case DriverConflictError():
            return status.HTTP_409_CONFLICT, "Driver with this plate already exists", []
        case InvalidDriverIDError():
            return status.HTTP_400_BAD_REQUEST, "Invalid driver ID format", []
        case InvalidLocationError() | InvalidTaxiTypeError():
            return status.HTTP_400_BAD_REQUEST, exc.message, []
        case _:
            return status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE, []


async def driver_error_handler(request: Request, exc: DriverServiceError) -> JSONResponse:
    status_code, message, details = translate_error(exc)

    if status_code >= 500:
        await log_error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        await log_info(
            f"{request.method} {request.url.path} -> {status_code}: {exc.message}",
            type_msg=TypeMsg.DEBUG,
        )

    return error_response(status_code, message, details)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc.status_code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [str(err.get("msg", "invalid value")) for err in exc.errors()]
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", details)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(f"Необработанная ошибка {request.method} {request.url.path}: {exc!r}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


def register_error_handlers(app: FastAPI) -> None:
    """Подключает обработчики ошибок к приложению."""
    app.add_exception_handler(DriverServiceError, driver_error_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
