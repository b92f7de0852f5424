"""Administrative user management: create moderators and delete accounts."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ApiError, field_error
from app.core.security import generate_temporary_password
from app.models import ROLE_ADMIN, ROLE_MODERATOR
from app.schemas.auth import TokenClaims
from app.schemas.users import CreateUserResponse
from app.services.users import (
    create_user,
    delete_user,
    get_user_by_email,
    get_user_by_id,
    get_user_by_username,
)

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username already in use"
EMAIL_TAKEN = "Email already in use"
MODERATOR_CREATED = "Moderator created successfully."
USER_NOT_FOUND = "User not found"
CANNOT_DELETE_SELF = "Administrators cannot delete their own account."
CANNOT_DELETE_ADMIN = "Administrators cannot delete another administrator account."


def _duplicate_errors(db: Session, username: str, email: str) -> list[dict[str, str]]:
    errors: list[dict[str, str]] = []
    if get_user_by_username(db, username) is not None:
        errors.append(field_error("username", USERNAME_TAKEN))
    if get_user_by_email(db, email) is not None:
        errors.append(field_error("email", EMAIL_TAKEN))
    return errors


def create_moderator(
    db: Session, username: str, email: str, admin: TokenClaims
) -> CreateUserResponse:
    """Create a moderator with a random temporary password that must be changed on first login."""
    errors = _duplicate_errors(db, username, email)
    if errors:
        raise ApiError.conflict(errors)

    temporary_password = generate_temporary_password()
    try:
        user = create_user(
            db,
            username=username,
            email=email,
            password=temporary_password,
            role=ROLE_MODERATOR,
            needs_password_change=True,
        )
    except IntegrityError:
        # Lost a race with a concurrent insert of the same username or email.
        db.rollback()
        raise ApiError.conflict(_duplicate_errors(db, username, email) or [
            field_error("username", USERNAME_TAKEN)
        ])

    logger.info(
        "Moderator created",
        extra={"user_id": user.id, "created_by": admin.user_id},
    )
    return CreateUserResponse(
        message=MODERATOR_CREATED,
        user_id=user.id,
        username=user.username,
        email=user.email,
        temporary_password=temporary_password,
    )


def delete_account(db: Session, user_id: int, admin: TokenClaims) -> None:
    """Delete a non-admin account. Admin accounts (including the caller's own) are protected."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise ApiError.not_found(USER_NOT_FOUND)
    if user.id == admin.user_id:
        raise ApiError.forbidden(CANNOT_DELETE_SELF)
    if user.role == ROLE_ADMIN:
        raise ApiError.forbidden(CANNOT_DELETE_ADMIN)
    delete_user(db, user)
    logger.info("User deleted", extra={"user_id": user_id, "deleted_by": admin.user_id})
