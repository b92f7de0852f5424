"""Login, access-token refresh and the forced initial-password change."""

import logging

import jwt
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.core.security import (
    create_access_token,
    create_change_password_token,
    decode_change_password_token,
    generate_refresh_token,
    password_fingerprint,
    verify_password,
)
from app.models import User
from app.schemas.auth import (
    AccessTokenResponse,
    ForceChangePasswordResponse,
    ForcedChangeResponse,
    TokenPairResponse,
)
from app.services.users import (
    apply_password_change,
    get_user_by_id,
    get_user_by_refresh_token,
    get_user_by_username,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
INVALID_CHANGE_TOKEN = "Password change token is invalid or has expired."
PASSWORD_CHANGED = "Password changed successfully."


def issue_token_pair(db: Session, user: User) -> TokenPairResponse:
    """Mint an access token and replace the stored refresh token (one session per account)."""
    refresh_token = generate_refresh_token()
    user.refresh_token = refresh_token
    db.commit()
    return TokenPairResponse(
        access_token=create_access_token(user.id, user.username, user.role),
        refresh_token=refresh_token,
    )


def login(
    db: Session, username: str, password: str
) -> TokenPairResponse | ForcedChangeResponse:
    """
    Verify credentials. Accounts still on their initial password get a
    change-password token instead of a session.
    """
    user = get_user_by_username(db, username)
    # Unknown user and wrong password are indistinguishable to the caller.
    if user is None or not verify_password(password, user.password):
        logger.warning("Login failed", extra={"username": username[:30]})
        raise ApiError.unauthorized(INVALID_CREDENTIALS)

    if user.needs_password_change:
        logger.info("Login requires password change", extra={"user_id": user.id})
        return ForcedChangeResponse(
            username=user.username,
            change_password_token=create_change_password_token(user.id, user.password),
        )

    tokens = issue_token_pair(db, user)
    logger.info("Login succeeded", extra={"user_id": user.id, "role": user.role})
    return tokens


def refresh_access_token(db: Session, refresh_token: str) -> AccessTokenResponse:
    """Exchange a stored refresh token for a new access token. The refresh token is not rotated."""
    user = get_user_by_refresh_token(db, refresh_token)
    if user is None:
        logger.warning("Refresh with unknown token")
        raise ApiError.forbidden(INVALID_REFRESH_TOKEN)
    return AccessTokenResponse(
        access_token=create_access_token(user.id, user.username, user.role)
    )


def force_change_password(
    db: Session, change_password_token: str, new_password: str
) -> ForceChangePasswordResponse:
    """Complete the forced change: verify the token, set the password, start a session."""
    try:
        payload = decode_change_password_token(change_password_token)
        user_id = int(payload["sub"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        raise ApiError.bad_request(INVALID_CHANGE_TOKEN)

    user = get_user_by_id(db, user_id)
    # The fingerprint no longer matches once the password has changed: single use.
    if user is None or payload["pwd"] != password_fingerprint(user.password):
        logger.warning("Stale or unknown change-password token", extra={"user_id": user_id})
        raise ApiError.bad_request(INVALID_CHANGE_TOKEN)

    apply_password_change(user, new_password)
    # Password update and the new refresh token are committed together.
    tokens = issue_token_pair(db, user)
    logger.info("Initial password changed", extra={"user_id": user.id})
    return ForceChangePasswordResponse(
        message=PASSWORD_CHANGED,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
