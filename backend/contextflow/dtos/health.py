"""DTOs for the health check run."""

from typing import Dict, List

from pydantic import BaseModel, Field


class HealthCheckErrorResponse(BaseModel):
    tracked_service_id: str
    manifest_path: str
    error: str


class HealthCheckRunResponse(BaseModel):
    success: bool = True
    checked: int
    counts: Dict[str, int]
    errors: List[HealthCheckErrorResponse] = Field(default_factory=list)
