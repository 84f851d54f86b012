"""
Repository Entity - A GitHub repository connected for manifest tracking.

Created when a user connects a repository, deactivated (never physically
removed) on disconnect.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from contextflow.entities.base import BaseEntity, PyObjectId


class Repository(BaseEntity):
    """Connected GitHub repository."""

    owner: str = Field(..., description="Repository owner login")
    name: str = Field(..., description="Repository name")
    full_name: str = Field(..., description="owner/name")
    github_repo_id: int = Field(..., description="GitHub's stable repository ID")
    default_branch: str = Field(default="main")

    user_id: Optional[PyObjectId] = Field(
        None, description="User whose GitHub credential is used for API calls"
    )

    # Push webhook registered on GitHub
    webhook_id: Optional[int] = None
    webhook_secret: Optional[str] = Field(
        None, description="Shared secret for X-Hub-Signature-256 verification"
    )

    is_active: bool = True
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_scanned_at: Optional[datetime] = None
