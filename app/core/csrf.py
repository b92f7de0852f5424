"""
Double-submit CSRF protection.

GET /csrf-token hands out a random token and sets an HTTP-only cookie holding
"<token>|<hmac>". State-changing requests must echo the token in the
x-csrf-token header; it is accepted only if it equals the cookie's token and the
cookie's HMAC verifies under CSRF_SECRET.
"""

import hashlib
import hmac
import logging
import secrets

from fastapi import Request, Response

from app.core.config import settings
from app.core.errors import ApiError

logger = logging.getLogger(__name__)

CSRF_COOKIE_NAME = "__Host-x-csrf-token"
CSRF_HEADER_NAME = "x-csrf-token"
CSRF_TOKEN_BYTES = 64
CSRF_IGNORED_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
INVALID_CSRF_MESSAGE = "invalid CSRF token"

_COOKIE_SEPARATOR = "|"


def _sign(token: str) -> str:
    return hmac.new(
        settings.CSRF_SECRET.get_secret_value().encode("utf-8"),
        token.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def generate_csrf_token() -> tuple[str, str]:
    """Return (token, cookie_value) for a new CSRF pair."""
    token = secrets.token_hex(CSRF_TOKEN_BYTES)
    return token, f"{token}{_COOKIE_SEPARATOR}{_sign(token)}"


def validate_csrf_pair(header_token: str | None, cookie_value: str | None) -> bool:
    """True if the header token matches the signed cookie."""
    if not header_token or not cookie_value or _COOKIE_SEPARATOR not in cookie_value:
        return False
    cookie_token, signature = cookie_value.split(_COOKIE_SEPARATOR, 1)
    if not hmac.compare_digest(signature, _sign(cookie_token)):
        return False
    return hmac.compare_digest(header_token, cookie_token)


def set_csrf_cookie(response: Response, cookie_value: str) -> None:
    """Attach the CSRF cookie with environment-specific attributes."""
    if settings.is_production:
        response.set_cookie(
            CSRF_COOKIE_NAME,
            cookie_value,
            httponly=True,
            secure=True,
            samesite="strict",
            path="/",
        )
    else:
        response.set_cookie(
            CSRF_COOKIE_NAME,
            cookie_value,
            httponly=True,
            secure=False,
            samesite="lax",
            path="/",
        )


async def csrf_protect(request: Request) -> None:
    """Dependency: reject state-changing requests without a valid token/cookie pair (403)."""
    if request.method.upper() in CSRF_IGNORED_METHODS:
        return
    header_token = request.headers.get(CSRF_HEADER_NAME)
    cookie_value = request.cookies.get(CSRF_COOKIE_NAME)
    if not validate_csrf_pair(header_token, cookie_value):
        logger.warning(
            "CSRF validation failed",
            extra={
                "path": request.url.path,
                "method": request.method,
                "has_header": bool(header_token),
                "has_cookie": bool(cookie_value),
            },
        )
        raise ApiError.forbidden(INVALID_CSRF_MESSAGE)
