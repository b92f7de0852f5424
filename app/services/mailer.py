"""Transactional email through the Mailgun HTTP API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from app.core.logging import redact_email

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "MSKTF Password Reset Request"


def is_mail_configured(settings: Settings) -> bool:
    if settings.MAILGUN_API_KEY is None or not settings.MAILGUN_DOMAIN:
        return False
    return bool(settings.MAILGUN_API_KEY.get_secret_value().strip())


def build_reset_link(settings: Settings, plaintext_token: str) -> str:
    return f"{settings.FRONTEND_URL}/reset-password.html?token={plaintext_token}"


def _reset_bodies(reset_link: str, expire_minutes: int) -> tuple[str, str]:
    """Return (text, html) bodies for the reset email."""
    text = (
        "You requested a password reset for your MSKTF account.\n\n"
        f"Please click the following link to reset your password:\n{reset_link}\n\n"
        f"This link will expire in {expire_minutes} minutes.\n\n"
        "If you did not request this, please ignore this email."
    )
    html = (
        "<p>You requested a password reset for your MSKTF account.</p>"
        "<p>Please click the following link to reset your password:</p>"
        f'<p><a href="{reset_link}" target="_blank">{reset_link}</a></p>'
        f"<p>This link will expire in <strong>{expire_minutes} minutes</strong>.</p>"
        "<p>If you did not request this, please ignore this email.</p>"
    )
    return text, html


async def send_password_reset_email(
    to_email: str,
    plaintext_token: str,
    settings: Settings,
) -> dict[str, Any] | None:
    """
    Send the reset link to to_email.

    Returns the provider response on success. Returns None when mail is not
    configured (the link is logged instead; never the case in production,
    where settings refuse to load without credentials) or when delivery fails.
    Delivery failures are logged, never raised.
    """
    reset_link = build_reset_link(settings, plaintext_token)
    if not is_mail_configured(settings):
        logger.warning(
            "Mail is not configured; password reset link logged instead of sent: %s",
            reset_link,
            extra={"to": redact_email(to_email)},
        )
        return None

    domain = settings.MAILGUN_DOMAIN or ""
    sender = settings.MAILGUN_FROM_EMAIL or f"no-reply@{domain}"
    text, html = _reset_bodies(reset_link, settings.PASSWORD_RESET_EXPIRE_MINUTES)
    url = f"{settings.MAILGUN_BASE_URL}/v3/{domain}/messages"
    data = {
        "from": sender,
        "to": to_email,
        "subject": RESET_SUBJECT,
        "text": text,
        "html": html,
    }
    auth = ("api", settings.MAILGUN_API_KEY.get_secret_value())

    try:
        async with httpx.AsyncClient(auth=auth) as client:
            resp = await client.post(url, data=data, timeout=settings.MAIL_REQUEST_TIMEOUT_SEC)
    except httpx.HTTPError as e:
        logger.error(
            "Password reset email failed",
            extra={"to": redact_email(to_email), "error_type": type(e).__name__},
        )
        return None

    if resp.status_code >= 400:
        logger.error(
            "Password reset email rejected by Mailgun",
            extra={
                "to": redact_email(to_email),
                "status_code": resp.status_code,
                "reason": (resp.text or "")[:200],
            },
        )
        return None

    try:
        body: dict[str, Any] = resp.json()
    except ValueError:
        body = {}
    logger.info(
        "Password reset email sent",
        extra={"to": redact_email(to_email), "message_id": body.get("id")},
    )
    return body
