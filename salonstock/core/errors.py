"""Error taxonomy and the JSON error envelope.

Domain code raises ``InvalidInput`` or ``NotFound``; the handlers below turn
them, request validation failures and anything unexpected into the same
``{"code": ..., "message": ...}`` body.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR_MESSAGE = "An unexpected error occurred."


class LedgerError(Exception):
    """Base class for errors the service reports to callers."""

    code = "error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(LedgerError):
    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(LedgerError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def ledger_exception_handler(request: Request, exc: LedgerError):
    return ErrorEnvelope(status_code=exc.status_code, code=exc.code, message=exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="validation_error",
        message=message,
        details={"errors": [_plain_error(err) for err in errors]},
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception("request.failed", exc_info=exc, extra={"extra_data": {"path": request.url.path}})
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="unexpected_error",
        message=GENERIC_SERVER_ERROR_MESSAGE,
    )


def _plain_error(error: dict[str, Any]) -> dict[str, Any]:
    # ``ctx`` can hold exception instances that are not JSON serialisable.
    return {
        "loc": [str(part) for part in error.get("loc", ())],
        "msg": error.get("msg"),
        "type": error.get("type"),
    }
