"""DTOs for commit suggestion endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from contextflow.entities.base import PyObjectIdStr


class CommitAuthorResponse(BaseModel):
    name: str = ""
    email: str = ""
    date: Optional[datetime] = None


class SuggestionResponse(BaseModel):
    id: PyObjectIdStr
    tracked_service_id: PyObjectIdStr
    repository_id: PyObjectIdStr
    commit_sha: str
    commit_message: str
    author: Optional[CommitAuthorResponse] = None
    parsed_status: Optional[str] = None
    parsed_next_steps: Optional[List[str]] = None
    suggested_manifest: Dict[str, Any]
    base_content_hash: Optional[str] = None
    applied: bool
    applied_at: Optional[datetime] = None
    applied_commit_sha: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, suggestion) -> "SuggestionResponse":
        return cls.model_validate(suggestion.model_dump())


class SuggestionListResponse(BaseModel):
    items: List[SuggestionResponse]
    total: int


class ApplySuggestionResponse(BaseModel):
    success: bool = True
    message: str = "Suggestion applied successfully"
    commit_sha: str
    suggestion: SuggestionResponse
