"""
CommitSuggestion Entity - A proposed manifest update derived from a commit.

Created by the webhook pipeline, marked applied by the suggestion service,
or deleted on dismissal. At most one unapplied suggestion exists per
(tracked service, commit sha).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from contextflow.entities.base import BaseEntity, PyObjectId
from contextflow.entities.enums import ServiceStatus


class CommitAuthor(BaseModel):
    name: str = ""
    email: str = ""
    date: Optional[datetime] = None


class CommitSuggestion(BaseEntity):
    """Pending or applied manifest update."""

    tracked_service_id: PyObjectId
    repository_id: PyObjectId

    commit_sha: str
    commit_message: str
    author: Optional[CommitAuthor] = None

    parsed_status: Optional[ServiceStatus] = None
    parsed_next_steps: Optional[List[str]] = None
    suggested_manifest: Dict[str, Any] = Field(
        ..., description="Full proposed manifest snapshot (JSON form)"
    )
    base_content_hash: Optional[str] = Field(
        None, description="Content hash of the manifest the suggestion was derived from"
    )

    applied: bool = False
    applied_at: Optional[datetime] = None
    applied_commit_sha: Optional[str] = None
