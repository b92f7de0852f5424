"""Health check response."""

from typing import Literal

from pydantic import Field

from app.schemas.common import CamelModel


class HealthResponse(CamelModel):
    status: Literal["ok"] = "ok"
    environment: Literal["development", "test", "production"]
    database: Literal["connected", "disconnected"]
    mail: Literal["mailgun", "log-only"] = Field(
        ..., description="'log-only' when reset links are logged instead of emailed"
    )
