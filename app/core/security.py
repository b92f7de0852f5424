"""Password hashing, access/change-password JWTs and opaque token generation."""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from app.core.config import settings

# Min/max lengths for username and password validation.
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 30
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

REFRESH_TOKEN_BYTES = 64
RESET_TOKEN_BYTES = 32
TEMPORARY_PASSWORD_LEN = 12

CHANGE_PASSWORD_PURPOSE = "change_password"

_UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
_DIGITS = "0123456789"


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password (or reset token) for storage."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain value against a stored bcrypt hash (constant-time inside bcrypt)."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: int, username: str, role: str) -> str:
    """
    Create a signed access token carrying userId, username and role.

    iat/exp are encoded in whole seconds, so two tokens for the same user issued
    within the same second are identical.
    """
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "userId": user_id,
        "username": username,
        "role": role,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token; return its claims.
    Raises jwt.PyJWTError on invalid or expired token.
    """
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "iat", "userId", "username", "role"]},
    )


def password_fingerprint(password_hash: str) -> str:
    """Short digest of a stored password hash; changes whenever the password changes."""
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_change_password_token(user_id: int, password_hash: str) -> str:
    """
    Short-lived token for the forced initial-password change.

    Bound to the current password hash through a fingerprint, so it stops
    verifying as soon as the password is changed.
    """
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "purpose": CHANGE_PASSWORD_PURPOSE,
        "pwd": password_fingerprint(password_hash),
        "iat": now,
        "exp": now + timedelta(minutes=settings.CHANGE_PASSWORD_TOKEN_EXPIRE_MINUTES),
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_change_password_token(token: str) -> dict[str, Any]:
    """
    Decode a change-password token. Raises jwt.PyJWTError if invalid, expired,
    or minted for another purpose.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["exp", "iat", "sub", "purpose", "pwd"]},
    )
    if payload.get("purpose") != CHANGE_PASSWORD_PURPOSE:
        raise jwt.InvalidTokenError("Token purpose mismatch")
    return payload


def generate_refresh_token() -> str:
    """64 random bytes as 128 lowercase hex characters."""
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def generate_reset_token() -> str:
    """32 random bytes as 64 lowercase hex characters."""
    return secrets.token_hex(RESET_TOKEN_BYTES)


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LEN) -> str:
    """Random password with at least one upper, lower and digit character, in shuffled order."""
    if length < 3:
        raise ValueError("Temporary password length must be at least 3")
    alphabet = _UPPERCASE + _LOWERCASE + _DIGITS
    chars = [
        secrets.choice(_UPPERCASE),
        secrets.choice(_LOWERCASE),
        secrets.choice(_DIGITS),
    ]
    chars.extend(secrets.choice(alphabet) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
