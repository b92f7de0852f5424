"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AccessTokenResponse,
    ForceChangePasswordRequest,
    ForceChangePasswordResponse,
    ForcedChangeResponse,
    LoginRequest,
    RefreshRequest,
    TokenClaims,
    TokenPairResponse,
)
from app.schemas.common import MessageResponse
from app.schemas.health import HealthResponse
from app.schemas.password_reset import ForgotPasswordRequest, ResetPasswordRequest
from app.schemas.users import (
    CreateUserRequest,
    CreateUserResponse,
    UserListItem,
    UserPublic,
    UsersListResponse,
)

__all__ = [
    "AccessTokenResponse",
    "CreateUserRequest",
    "CreateUserResponse",
    "ForceChangePasswordRequest",
    "ForceChangePasswordResponse",
    "ForcedChangeResponse",
    "ForgotPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "RefreshRequest",
    "ResetPasswordRequest",
    "TokenClaims",
    "TokenPairResponse",
    "UserListItem",
    "UserPublic",
    "UsersListResponse",
]
