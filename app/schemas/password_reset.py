"""Request schemas for the password-reset flow."""

from pydantic import Field, ValidationInfo, field_validator

from app.schemas.common import CamelModel, check_new_password
from app.schemas.users import normalize_email


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., description="Account email address")

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., description="Plaintext token from the reset email")
    new_password: str
    confirm_password: str

    @field_validator("token")
    @classmethod
    def token_required(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Reset token is required.")
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
