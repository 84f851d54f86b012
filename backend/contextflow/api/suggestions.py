"""Commit suggestion endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pymongo.database import Database

from contextflow.database.mongo import get_db
from contextflow.dtos import (
    ApplySuggestionResponse,
    SuggestionListResponse,
    SuggestionResponse,
)
from contextflow.services.suggestion_service import SuggestionService

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])


def get_suggestion_service(db: Database = Depends(get_db)) -> SuggestionService:
    return SuggestionService(db)


@router.get("", response_model=SuggestionListResponse)
def list_suggestions(
    repository_id: str | None = Query(default=None),
    service_id: str | None = Query(default=None),
    include_applied: bool = Query(default=False),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Pending suggestions for a repository, or all suggestions for a service."""
    if service_id:
        suggestions = service.list_for_service(service_id, include_applied)
    elif repository_id:
        suggestions = service.list_for_repository(repository_id)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="repository_id or service_id is required",
        )
    items = [SuggestionResponse.from_entity(s) for s in suggestions]
    return SuggestionListResponse(items=items, total=len(items))


@router.post("/{suggestion_id}/apply", response_model=ApplySuggestionResponse)
def apply_suggestion(
    suggestion_id: str = Path(...),
    service: SuggestionService = Depends(get_suggestion_service),
):
    """Write the suggested manifest to GitHub. A concurrent edit yields 409."""
    result = service.apply(suggestion_id)
    return ApplySuggestionResponse(
        commit_sha=result.commit_sha,
        suggestion=SuggestionResponse.from_entity(result.suggestion),
    )


@router.delete("/{suggestion_id}")
def dismiss_suggestion(
    suggestion_id: str = Path(...),
    service: SuggestionService = Depends(get_suggestion_service),
):
    service.dismiss(suggestion_id)
    return {"success": True, "message": "Suggestion dismissed"}
