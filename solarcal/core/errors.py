"""Error types and the normalized error envelope.

Every error response has the shape::

    {"error": {"code", "message", "request_id"}, "detail": message}

and echoes the request id in the ``x-request-id`` header.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from solarcal.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class CalendarError(AppError, ValueError):
    """Bad input to the calendar engine itself."""
    status_code = 400


class InvalidDateError(CalendarError):
    """Malformed or out-of-range Gregorian input, or an impossible calendar position."""
    code = "invalid_date"


class InvalidAnchorError(CalendarError):
    """Anchor missing or without a usable start date."""
    code = "invalid_anchor"


class MalformedIdentifierError(CalendarError):
    code = "malformed_identifier"


_HTTP_CODES = {404: "not_found", 405: "method_not_allowed"}


def _resolve_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def _error_response(status_code: int, code: str, message: str, rid: str) -> JSONResponse:
    payload = {
        "error": {"code": code, "message": message, "request_id": rid},
        "detail": message,
    }
    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _resolve_request_id(request)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return _error_response(exc.status_code, exc.code, exc.message, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _resolve_request_id(request)
    code = _HTTP_CODES.get(exc.status_code, "http_error")
    message = str(exc.detail) if exc.detail else "HTTP error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _error_response(exc.status_code, code, message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _resolve_request_id(request)
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    return _error_response(500, "internal_error", "Unexpected error", rid)
