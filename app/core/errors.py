"""Tagged API error type and the terminal exception handlers that format every error response."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

VALIDATION_ERROR_MESSAGE = "Validation Error"
INTERNAL_ERROR_MESSAGE = "Internal Server Error"
PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INTERNAL = "internal"


class ApiError(Exception):
    """
    Error raised by services and dependencies; converted to JSON only by the handlers below.

    errors: optional list of {"path": field, "msg": message} entries for validation failures.
    """

    def __init__(
        self,
        kind: ErrorKind,
        status_code: int,
        message: str,
        errors: list[dict[str, str]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.kind = kind
        self.status_code = status_code
        self.message = message
        self.errors = errors
        self.headers = headers
        super().__init__(message)

    @classmethod
    def validation(cls, errors: list[dict[str, str]]) -> ApiError:
        return cls(ErrorKind.VALIDATION, 400, VALIDATION_ERROR_MESSAGE, errors=errors)

    @classmethod
    def bad_request(cls, message: str) -> ApiError:
        return cls(ErrorKind.VALIDATION, 400, message)

    @classmethod
    def unauthorized(cls, message: str) -> ApiError:
        return cls(ErrorKind.AUTHENTICATION, 401, message, headers={"WWW-Authenticate": "Bearer"})

    @classmethod
    def forbidden(cls, message: str) -> ApiError:
        return cls(ErrorKind.FORBIDDEN, 403, message)

    @classmethod
    def not_found(cls, message: str) -> ApiError:
        return cls(ErrorKind.NOT_FOUND, 404, message)

    @classmethod
    def conflict(cls, errors: list[dict[str, str]]) -> ApiError:
        # Duplicates are reported as validation errors, not 409.
        return cls(ErrorKind.CONFLICT, 400, VALIDATION_ERROR_MESSAGE, errors=errors)

    @classmethod
    def rate_limited(cls, message: str, retry_after: int) -> ApiError:
        return cls(
            ErrorKind.RATE_LIMITED,
            429,
            message,
            headers={"Retry-After": str(max(retry_after, 1))},
        )

    @classmethod
    def internal(cls, message: str = INTERNAL_ERROR_MESSAGE) -> ApiError:
        return cls(ErrorKind.INTERNAL, 500, message)


def field_error(path: str, msg: str) -> dict[str, str]:
    return {"path": path, "msg": msg}


def error_response(
    status_code: int,
    message: str,
    errors: list[dict[str, str]] | None = None,
    headers: dict[str, str] | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the JSON error body shared by handlers and short-circuiting middleware."""
    content: dict[str, Any] = {"message": message}
    if errors:
        content["errors"] = errors
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _validation_errors(exc: RequestValidationError) -> list[dict[str, str]]:
    out: list[dict[str, str]] = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        path = loc[-1] if loc else "body"
        msg = str(err.get("msg", "Invalid value"))
        # Custom field validators surface as "Value error, <message>".
        if msg.startswith(PYDANTIC_VALUE_ERROR_PREFIX):
            msg = msg[len(PYDANTIC_VALUE_ERROR_PREFIX):]
        if err.get("type") == "missing":
            msg = f"{path} is required."
        elif err.get("type") == "json_invalid":
            msg = "Malformed JSON body."
        out.append(field_error(path, msg))
    return out


def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
    """
    Log an unhandled exception with its stack and build the 500 body.

    Production responses carry only the generic message; elsewhere the exception
    type and text are included to ease debugging.
    """
    logger.exception(
        "Unhandled exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
        },
    )
    if settings.is_production:
        return error_response(500, INTERNAL_ERROR_MESSAGE)
    return error_response(
        500,
        INTERNAL_ERROR_MESSAGE,
        extra={"error": f"{type(exc).__name__}: {exc}"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the terminal handlers; these are the only place error responses are formatted."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Request failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
                "error_kind": exc.kind.value,
                "reason": exc.message[:200],
            },
        )
        if exc.status_code >= 500 and settings.is_production:
            # Server-side detail stays in the log only.
            return error_response(exc.status_code, INTERNAL_ERROR_MESSAGE, headers=exc.headers)
        return error_response(exc.status_code, exc.message, exc.errors, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = _validation_errors(exc)
        logger.info(
            "Validation failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "fields": ",".join(e["path"] for e in errors),
            },
        )
        return error_response(400, VALIDATION_ERROR_MESSAGE, errors)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception) -> JSONResponse:
        return internal_error_response(request, exc)
