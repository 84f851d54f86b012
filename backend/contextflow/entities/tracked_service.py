"""
TrackedService Entity - Local mirror of one remote vibe.json manifest.

Created when the manifest scanner first discovers a manifest file, refreshed
when a suggestion is applied or a rescan sees upstream changes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from contextflow.entities.base import BaseEntity, PyObjectId
from contextflow.entities.enums import HealthStatus, Priority, ServiceStatus


class TrackedService(BaseEntity):
    """Denormalized manifest fields plus health tracking."""

    repository_id: PyObjectId = Field(..., description="Owning repository")
    manifest_path: str = Field(..., description="Path of the manifest in the repository")

    # Denormalized manifest fields
    service_name: str
    status: ServiceStatus
    current_task: str
    progress: int = Field(default=0, ge=0, le=100)
    last_update: Optional[datetime] = None
    next_steps: List[str] = Field(default_factory=list)
    dependencies: Optional[List[str]] = None
    priority: Optional[Priority] = None

    # Health
    health_status: HealthStatus = HealthStatus.UNKNOWN
    last_commit_date: Optional[datetime] = None
    last_health_check_at: Optional[datetime] = None
