"""Schema for the unauthenticated liveness check."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """GET /health body. status is always "ok" while the process serves requests."""

    status: Literal["ok"] = "ok"
    environment: str = Field(description="APP_ENV of the running process")
    database: Literal["connected", "disconnected"] = Field(
        description="Result of a SELECT 1 against the users database",
    )
