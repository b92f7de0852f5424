"""HTTP middleware: request ids and access logging, API rate limit, body-size limit, hardening headers."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request, Response
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.config import settings
from app.core.errors import ApiError, error_response, internal_error_response
from app.core.rate_limit import RateLimiter, api_rate_limiter

logger = logging.getLogger("app.access")

REQUEST_ID_HEADER = "X-Request-ID"
BODY_TOO_LARGE_MESSAGE = "Request body too large"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

CallNext = Callable[[Request], Awaitable[Response]]


def is_api_path(path: str) -> bool:
    prefix = settings.API_PREFIX
    return path == prefix or path.startswith(prefix + "/")


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than max_bytes with 413.

    A declared Content-Length is checked up front. Bodies without one (chunked
    transfer) are counted while they stream in; crossing the limit aborts the read
    with an HTTPException that the app's handlers turn into the 413 body.
    """

    def __init__(self, app: ASGIApp, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                too_large = int(content_length) > self.max_bytes
            except ValueError:
                await error_response(400, "Invalid Content-Length header")(scope, receive, send)
                return
            if too_large:
                self._log_rejected(scope, content_length)
                await error_response(413, BODY_TOO_LARGE_MESSAGE)(scope, receive, send)
                return
            await self.app(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    self._log_rejected(scope, f">{self.max_bytes} (streamed)")
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)

    @staticmethod
    def _log_rejected(scope: Scope, size: str) -> None:
        logger.warning(
            "Request body too large",
            extra={"path": scope.get("path"), "content_length": size},
        )


def _add_security_headers(request: Request, response: Response) -> None:
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    if is_api_path(request.url.path):
        response.headers.setdefault("Cache-Control", "no-store")
    if settings.is_production:
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=15552000; includeSubDomains"
        )


def install_middleware(app: FastAPI) -> None:
    """
    Register middleware. Starlette runs the last registered middleware first, so
    the order below is innermost to outermost: body limit, API rate limit,
    hardening headers, then the request-id/logging wrapper that sees every response.
    """
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.MAX_BODY_BYTES)

    @app.middleware("http")
    async def limit_api_rate(request: Request, call_next: CallNext) -> Response:
        # Counted here rather than per route so unmatched /api paths count too.
        if not is_api_path(request.url.path):
            return await call_next(request)
        try:
            result = api_rate_limiter.hit(request)
        except ApiError as exc:
            return error_response(exc.status_code, exc.message, headers=exc.headers)
        response = await call_next(request)
        # A stricter route-level limiter may already have reported its own window.
        if result is not None and "RateLimit-Limit" not in response.headers:
            RateLimiter.apply_headers(response, result)
        return response

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        _add_security_headers(request, response)
        return response

    @app.middleware("http")
    async def log_requests(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            # Uncaught errors would otherwise be answered outside this wrapper,
            # without the request id or hardening headers.
            response = internal_error_response(request, exc)
            _add_security_headers(request, response)
        duration_ms = round((time.perf_counter() - started) * 1000, 1)
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s %s",
            request.method,
            request.url.path,
            response.status_code,
            extra={
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
