"""Health check schemas."""

from typing import Dict, Literal

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Service health: "degraded" when any dependency check fails."""

    status: Literal["ok", "degraded"]
    database: str
    redis: str
    pending_side_effects: int = Field(description="Side-effect tasks still running")
    services: Dict[str, str] = {}
