"""DTOs for GitHub webhook deliveries."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PushAuthor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = ""
    email: str = ""
    date: Optional[datetime] = None


class PushCommit(BaseModel):
    """One commit of a push payload."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    message: str = ""
    timestamp: Optional[datetime] = None
    author: PushAuthor = Field(default_factory=PushAuthor)
    added: List[str] = Field(default_factory=list)
    modified: List[str] = Field(default_factory=list)
    removed: List[str] = Field(default_factory=list)

    @property
    def changed_files(self) -> List[str]:
        return [*self.added, *self.modified, *self.removed]

    @property
    def authored_at(self) -> Optional[datetime]:
        return self.author.date or self.timestamp


class PushRepository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    full_name: str = ""


class PushEvent(BaseModel):
    """The subset of a ``push`` payload the sync pipeline consumes."""

    model_config = ConfigDict(extra="ignore")

    ref: Optional[str] = None
    repository: PushRepository
    # Raw entries, validated one at a time as PushCommit by the webhook service
    commits: List[Any] = Field(default_factory=list)


class WebhookResponse(BaseModel):
    """Body returned for every webhook outcome."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    suggestions_created: int = 0
    errors: Optional[List[str]] = None
