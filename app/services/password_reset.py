"""Password reset: issue hashed, expiring reset tokens and consume them."""

import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.core.logging import redact_email
from app.core.security import generate_reset_token, hash_password, verify_password
from app.models import User
from app.services.users import (
    apply_password_change,
    get_user_by_email,
    list_users_with_reset_token,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)
INVALID_RESET_TOKEN = "Password reset token is invalid or has expired."
RESET_SUCCESS_MESSAGE = "Password has been successfully reset. You can now log in."
RESET_SAVE_FAILED = "Failed to save password reset token."


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def issue_reset_token(db: Session, email: str, settings: "Settings") -> tuple[str, str] | None:
    """
    Store a hashed reset token for the account with this email.

    Returns (recipient_email, plaintext_token), or None if no account matches.
    Raises a 500 ApiError if the token cannot be persisted; no mail may be sent then.
    """
    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email", extra={"email": redact_email(email)})
        return None

    plaintext_token = generate_reset_token()
    try:
        user.password_reset_token = hash_password(plaintext_token)
        user.password_reset_expires = datetime.now(UTC) + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist reset token", extra={"user_id": user.id})
        raise ApiError.internal(RESET_SAVE_FAILED)

    logger.info("Password reset token issued", extra={"user_id": user.id})
    return user.email, plaintext_token


def find_user_for_reset_token(db: Session, plaintext_token: str) -> User | None:
    """
    Scan users with an outstanding reset token and return the first whose hash
    matches and whose expiry is still in the future.
    """
    now = datetime.now(UTC)
    for candidate in list_users_with_reset_token(db):
        if not verify_password(plaintext_token, candidate.password_reset_token):
            continue
        expires = candidate.password_reset_expires
        if expires is not None and _as_utc(expires) > now:
            return candidate
        logger.info("Reset token matched but expired", extra={"user_id": candidate.id})
    return None


def consume_reset_token(db: Session, plaintext_token: str, new_password: str) -> None:
    """Reset the password for the token's owner; raises a 400 ApiError if no live token matches."""
    candidate = find_user_for_reset_token(db, plaintext_token)
    if candidate is None:
        logger.warning("Invalid or expired reset token presented")
        raise ApiError.bad_request(INVALID_RESET_TOKEN)

    # Re-read the row locked and still carrying the same hash; a concurrent
    # consumer that already cleared it makes this lookup come back empty.
    user = (
        db.query(User)
        .filter(
            User.id == candidate.id,
            User.password_reset_token == candidate.password_reset_token,
        )
        .with_for_update()
        .populate_existing()
        .first()
    )
    if user is None:
        raise ApiError.bad_request(INVALID_RESET_TOKEN)

    apply_password_change(user, new_password)
    db.commit()
    logger.info("Password reset completed", extra={"user_id": user.id})
