"""DTOs for repository connection endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from contextflow.entities.base import PyObjectIdStr


class RepoConnectRequest(BaseModel):
    owner: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    setup_webhook: bool = True


class RepoResponse(BaseModel):
    id: PyObjectIdStr
    owner: str
    name: str
    full_name: str
    github_repo_id: int
    default_branch: str
    user_id: Optional[PyObjectIdStr] = None
    webhook_active: bool = False
    is_active: bool
    connected_at: Optional[datetime] = None
    disconnected_at: Optional[datetime] = None
    last_scanned_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, repository) -> "RepoResponse":
        payload = repository.model_dump(exclude={"webhook_secret"})
        payload["webhook_active"] = repository.webhook_id is not None
        return cls.model_validate(payload)
