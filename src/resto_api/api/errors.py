"""
resto_api.api.errors

Last-resort exception translation for every request.

Responsibilities:
- Map any raised error to `{errorCode, message, details?}` plus an HTTP status.
- Log each failure once, with more detail outside production.
- Install the translation on a FastAPI app (handlers + catch-all middleware).

Precedence (first match wins):
1. HTTP exception, status 400, list detail   -> VALIDATION_ERROR (400)
2. any other HTTP exception                  -> code from status table
3. document schema validation error          -> VALIDATION_ERROR (400)
4. malformed identifier (cast error)         -> INVALID_INPUT (400)
5. unique-key conflict                       -> DUPLICATE_ENTRY (409)
6. request validator errors                  -> VALIDATION_ERROR (400)
7. any other Exception                       -> INTERNAL_SERVER_ERROR (500)
8. anything else                             -> UNKNOWN_ERROR (500)
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from resto_api.db.errors import CastError, DocumentValidationError, DuplicateKeyError
from resto_api.observability.logging import get_logger

log = get_logger(__name__)

STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "UNPROCESSABLE_ENTITY",
    429: "TOO_MANY_REQUESTS",
    500: "INTERNAL_SERVER_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    error_code: str
    message: str
    details: Any = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"errorCode": self.error_code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


def error_code_for_status(status: int) -> str:
    return STATUS_CODES.get(status, f"HTTP_{status}")


def translate_exception(exc: object, *, production: bool) -> tuple[int, ErrorResponse]:
    if isinstance(exc, StarletteHTTPException):
        return exc.status_code, _from_http_exception(exc)

    if isinstance(exc, DocumentValidationError):
        errors = [{"field": e.field, "message": e.message, "value": e.value} for e in exc.errors]
        return 400, ErrorResponse("VALIDATION_ERROR", "Data validation failed", {"errors": errors})

    if isinstance(exc, CastError):
        return 400, ErrorResponse(
            "INVALID_INPUT",
            f"Invalid {exc.field}: {exc.value}",
            {"field": exc.field, "value": exc.value, "expectedType": exc.kind},
        )

    if isinstance(exc, DuplicateKeyError):
        field = next(iter(exc.key_pattern), "field")
        value = exc.key_value.get(field) or "unknown"
        return 409, ErrorResponse(
            "DUPLICATE_ENTRY",
            f"{field} '{value}' already exists",
            {"field": field, "value": value},
        )

    validator_errors = _validator_errors(exc)
    if validator_errors is not None:
        return 400, ErrorResponse(
            "VALIDATION_ERROR", "Request validation failed", {"errors": validator_errors}
        )

    if isinstance(exc, Exception):
        details = None if production else {"originalMessage": str(exc)}
        return 500, ErrorResponse(
            "INTERNAL_SERVER_ERROR", "An internal server error occurred", details
        )

    return 500, ErrorResponse("UNKNOWN_ERROR", "An unknown error occurred")


def _from_http_exception(exc: StarletteHTTPException) -> ErrorResponse:
    detail = exc.detail
    if exc.status_code == 400 and isinstance(detail, list):
        return ErrorResponse("VALIDATION_ERROR", "Validation failed", {"errors": detail})

    details = None
    if isinstance(detail, str):
        message = detail
    elif isinstance(detail, list):
        message = ", ".join(str(d) for d in detail)
    elif isinstance(detail, dict):
        raw = detail.get("message")
        message = ", ".join(map(str, raw)) if isinstance(raw, list) else str(raw or "")
        details = detail.get("details")
    else:
        message = ""
    if not message:
        try:
            message = HTTPStatus(exc.status_code).phrase
        except ValueError:
            message = "An error occurred"
    return ErrorResponse(error_code_for_status(exc.status_code), message, details)


def _validator_errors(exc: object) -> list[dict[str, Any]] | None:
    if isinstance(exc, (RequestValidationError, ValidationError)):
        raw = list(exc.errors())
    elif isinstance(exc, list) and exc and all(isinstance(e, dict) and "msg" in e for e in exc):
        raw = exc
    else:
        return None
    return [
        {
            "field": ".".join(str(p) for p in _field_path(e.get("loc", ()))),
            "message": e.get("msg", ""),
            "value": e.get("input"),
        }
        for e in raw
    ]


def _field_path(loc: Any) -> list[Any]:
    parts = list(loc)
    # Request errors are prefixed with where the value came from.
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return parts


def error_response(request: Request, exc: object, *, production: bool) -> Response:
    status, body = translate_exception(exc, production=production)
    if production:
        log.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            error_code=body.error_code,
            message=body.message,
        )
    else:
        log.error(
            "request_failed",
            method=request.method,
            path=request.url.path,
            exc_info=exc if isinstance(exc, BaseException) else None,
            error=None if isinstance(exc, BaseException) else repr(exc),
        )
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(
        status_code=status, content=jsonable_encoder(body.to_dict()), headers=headers
    )


class ExceptionTranslationMiddleware(BaseHTTPMiddleware):
    """
    Catches whatever escaped the routed exception handlers.
    """

    def __init__(self, app, *, production: bool) -> None:
        super().__init__(app)
        self._production = production

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc, production=self._production)


def install_exception_translation(app: FastAPI, *, production: bool) -> None:
    async def _handle(request: Request, exc: Exception) -> Response:
        return error_response(request, exc, production=production)

    for exc_type in (
        StarletteHTTPException,
        RequestValidationError,
        DocumentValidationError,
        CastError,
        DuplicateKeyError,
    ):
        app.add_exception_handler(exc_type, _handle)
    app.add_middleware(ExceptionTranslationMiddleware, production=production)


# --- Module Notes -----------------------------------------------------------
# Typed errors are handled inside the router stack; the middleware is the net for
# everything else, so unanticipated failures still get the fixed error shape.
