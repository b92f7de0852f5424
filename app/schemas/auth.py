"""Request/response schemas for login, refresh and the forced password change."""

from typing import Literal

from pydantic import Field, ValidationInfo, field_validator

from app.schemas.common import HEX_128_RE, CamelModel, check_new_password


class LoginRequest(CamelModel):
    """Credentials for login."""

    username: str = Field(..., description="Username")
    password: str = Field(..., description="Password")

    @field_validator("username")
    @classmethod
    def username_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Username is required.")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return check_new_password(v)


class TokenPairResponse(CamelModel):
    """Access token plus the opaque refresh token."""

    access_token: str = Field(..., description="JWT access token (15 minutes)")
    refresh_token: str = Field(..., description="Opaque refresh token (128 hex chars)")


class ForcedChangeResponse(CamelModel):
    """Returned by login instead of tokens while the account still has its initial password."""

    needs_password_change: Literal[True] = True
    username: str
    change_password_token: str = Field(..., description="Short-lived token for /force-change-password")


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., description="Refresh token returned by login")

    @field_validator("refresh_token")
    @classmethod
    def refresh_token_format(cls, v: str) -> str:
        if not HEX_128_RE.match(v):
            raise ValueError("Refresh token must be 128 hexadecimal characters.")
        return v


class AccessTokenResponse(CamelModel):
    access_token: str = Field(..., description="JWT access token (15 minutes)")


class ForceChangePasswordRequest(CamelModel):
    """Body for POST /admin/force-change-password."""

    change_password_token: str = Field(..., description="Token returned by login")
    new_password: str
    confirm_password: str

    @field_validator("change_password_token")
    @classmethod
    def token_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Password change token is required.")
        return v.strip()

    @field_validator("new_password")
    @classmethod
    def new_password_length(cls, v: str) -> str:
        return check_new_password(v)

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        if "new_password" in info.data and v != info.data["new_password"]:
            raise ValueError("Passwords do not match")
        return v


class ForceChangePasswordResponse(CamelModel):
    message: str
    access_token: str
    refresh_token: str


class TokenClaims(CamelModel):
    """Decoded access-token claims attached to authenticated requests."""

    user_id: int
    username: str
    role: str
