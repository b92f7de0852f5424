"""Request/response schemas for administrative user management."""

from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from pydantic import Field, field_validator

from app.core.security import USERNAME_MAX_LEN, USERNAME_MIN_LEN
from app.schemas.common import CamelModel


def normalize_email(value: str) -> str:
    """Validate an email address (syntax only) and return it lowercased."""
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError("Valid email required.") from e
    return result.normalized.lower()


class CreateUserRequest(CamelModel):
    """Body for POST /admin/users; the account is always created as a moderator."""

    username: str = Field(..., description="3-30 printable characters")
    email: str = Field(..., description="Unique email address")

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str) -> str:
        v = v.strip()
        if not (USERNAME_MIN_LEN <= len(v) <= USERNAME_MAX_LEN):
            raise ValueError(
                f"Username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters."
            )
        if not v.isprintable():
            raise ValueError("Username must contain only printable characters.")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)


class CreateUserResponse(CamelModel):
    message: str
    user_id: int
    username: str
    email: str
    temporary_password: str = Field(..., description="Shown once; hand over out of band")


class UserPublic(CamelModel):
    """Public projection of a user; never includes password or token fields."""

    id: int
    username: str
    email: str
    role: str
    needs_password_change: bool


class UserListItem(UserPublic):
    created_at: datetime | None = None


class UsersListResponse(CamelModel):
    users: list[UserListItem]
