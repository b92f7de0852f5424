"""Shared schema base classes and field rules."""

import re

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN

HEX_128_RE = re.compile(r"^[0-9a-fA-F]{128}$")


class CamelModel(BaseModel):
    """Base for API records: snake_case attributes, camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class MessageResponse(CamelModel):
    """Plain {message} body."""

    message: str = Field(..., description="Human-readable outcome")


def check_new_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LEN:
        raise ValueError(f"Password must be at least {PASSWORD_MIN_LEN} characters.")
    if len(value) > PASSWORD_MAX_LEN:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_LEN} characters.")
    return value
