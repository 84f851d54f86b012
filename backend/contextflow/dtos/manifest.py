"""DTOs for tracked services (manifests) and scans."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from contextflow.entities.base import PyObjectIdStr


class TrackedServiceResponse(BaseModel):
    id: PyObjectIdStr
    repository_id: PyObjectIdStr
    manifest_path: str
    service_name: str
    status: str
    current_task: str
    progress: int
    last_update: Optional[datetime] = None
    next_steps: List[str] = Field(default_factory=list)
    dependencies: Optional[List[str]] = None
    priority: Optional[str] = None
    health_status: str
    last_commit_date: Optional[datetime] = None
    last_health_check_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, service) -> "TrackedServiceResponse":
        return cls.model_validate(service.model_dump())


class TrackedServiceListResponse(BaseModel):
    items: List[TrackedServiceResponse]
    total: int


class ScanRequest(BaseModel):
    repository_id: str = Field(..., min_length=1)


class ScanQueuedResponse(BaseModel):
    repository_id: str
    task_id: str
    status: str = "queued"


class PromoteStepRequest(BaseModel):
    step_index: int = Field(..., ge=0)
    task_title: Optional[str] = None
