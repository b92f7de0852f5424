"""Auth dependencies shared by routers: bearer-token claims and the admin role check."""

import logging
from typing import Annotated

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError

from app.core.errors import ApiError
from app.core.security import decode_access_token
from app.models import ROLE_ADMIN
from app.schemas.auth import TokenClaims

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

NO_TOKEN = "Unauthorized: No token provided"
INVALID_TOKEN = "Forbidden: Invalid token"
ADMIN_REQUIRED = "Forbidden: admin role required"


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> TokenClaims:
    """Dependency: require a valid Bearer access token and return its decoded claims."""
    if credentials is None or not credentials.credentials:
        raise ApiError.unauthorized(NO_TOKEN)
    try:
        payload = decode_access_token(credentials.credentials)
        return TokenClaims.model_validate(payload)
    except (jwt.PyJWTError, ValidationError):
        raise ApiError.forbidden(INVALID_TOKEN)


def require_admin(
    current_user: Annotated[TokenClaims, Depends(get_current_user)],
) -> TokenClaims:
    """Dependency: require role 'admin' in the token claims. Raises 403 otherwise."""
    if current_user.role != ROLE_ADMIN:
        logger.warning(
            "Admin-only route denied",
            extra={"user_id": current_user.user_id, "role": current_user.role},
        )
        raise ApiError.forbidden(ADMIN_REQUIRED)
    return current_user
