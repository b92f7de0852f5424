"""Admin routes: login, token refresh, forced password change, and user management."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, require_admin
from app.core.database import get_db
from app.core.errors import ApiError
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
from app.schemas.users import (
    CreateUserRequest,
    CreateUserResponse,
    UserListItem,
    UserPublic,
    UsersListResponse,
)
from app.services import auth as auth_service
from app.services import user_admin
from app.services.users import get_user_by_id, list_users

router = APIRouter()


@router.post("/login", response_model=TokenPairResponse | ForcedChangeResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> TokenPairResponse | ForcedChangeResponse:
    """
    Authenticate with username and password.

    Returns {accessToken, refreshToken}, or {needsPasswordChange, username,
    changePasswordToken} while the account still has its initial password.
    Send the access token as: Authorization: Bearer <accessToken>
    """
    return auth_service.login(db, body.username, body.password)


@router.post("/refresh", response_model=AccessTokenResponse)
def refresh(
    body: RefreshRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AccessTokenResponse:
    """Exchange a refresh token for a fresh access token."""
    return auth_service.refresh_access_token(db, body.refresh_token)


@router.post("/force-change-password", response_model=ForceChangePasswordResponse)
def force_change_password(
    body: ForceChangePasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> ForceChangePasswordResponse:
    """Set the first own password using the changePasswordToken returned by login."""
    return auth_service.force_change_password(
        db, body.change_password_token, body.new_password
    )


@router.get("/me", response_model=UserPublic)
def read_me(
    current_user: Annotated[TokenClaims, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserPublic:
    """Return the authenticated user's public profile."""
    user = get_user_by_id(db, current_user.user_id)
    if user is None:
        raise ApiError.not_found(user_admin.USER_NOT_FOUND)
    return UserPublic.model_validate(user)


@router.get("/users", response_model=UsersListResponse)
def get_users(
    _admin: Annotated[TokenClaims, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    """List all accounts (admin only)."""
    return UsersListResponse(
        users=[UserListItem.model_validate(u) for u in list_users(db)]
    )


@router.post(
    "/users",
    response_model=CreateUserResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_moderator(
    body: CreateUserRequest,
    admin: Annotated[TokenClaims, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> CreateUserResponse:
    """
    Create a moderator with a generated 12-character temporary password (admin only).
    The password is returned once and must be handed over out of band.
    """
    return user_admin.create_moderator(db, body.username, body.email, admin)


@router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
def delete_user(
    user_id: Annotated[int, Path(ge=1)],
    admin: Annotated[TokenClaims, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete a moderator account (admin only). Admins, including the caller, cannot be deleted."""
    user_admin.delete_account(db, user_id, admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
