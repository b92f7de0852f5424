"""Core app configuration, database, security and HTTP plumbing."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import ApiError, ErrorKind

__all__ = ["ApiError", "ErrorKind", "get_settings", "settings", "get_db"]
