"""Tracked service (manifest) endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pymongo.database import Database

from contextflow.database.mongo import get_db
from contextflow.dtos import (
    PromoteStepRequest,
    ScanQueuedResponse,
    ScanRequest,
    TrackedServiceListResponse,
    TrackedServiceResponse,
)
from contextflow.repositories import RepositoryRepository, TrackedServiceRepository
from contextflow.services.suggestion_service import ManifestService
from contextflow.tasks.manifest_tasks import scan_repository

router = APIRouter(prefix="/manifests", tags=["Manifests"])


@router.get("", response_model=TrackedServiceListResponse)
def list_manifests(
    repository_id: Optional[str] = Query(default=None),
    db: Database = Depends(get_db),
):
    """List tracked services, optionally for one repository."""
    service_repo = TrackedServiceRepository(db)
    if repository_id:
        services = service_repo.find_by_repository(repository_id)
    else:
        active_ids = [repo.id for repo in RepositoryRepository(db).list_active()]
        services = service_repo.find_by_repositories(active_ids)

    items = [TrackedServiceResponse.from_entity(s) for s in services]
    return TrackedServiceListResponse(items=items, total=len(items))


@router.get("/{service_id}", response_model=TrackedServiceResponse)
def get_manifest(service_id: str = Path(...), db: Database = Depends(get_db)):
    service = TrackedServiceRepository(db).find_by_id(service_id)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Tracked service {service_id} not found",
        )
    return TrackedServiceResponse.from_entity(service)


@router.post(
    "/scan", response_model=ScanQueuedResponse, status_code=status.HTTP_202_ACCEPTED
)
def scan_manifests(payload: ScanRequest, db: Database = Depends(get_db)):
    """Queue a manifest scan for a repository."""
    repository = RepositoryRepository(db).find_by_id(payload.repository_id)
    if not repository or not repository.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Repository {payload.repository_id} not found",
        )

    task = scan_repository.delay(str(repository.id))
    return ScanQueuedResponse(repository_id=str(repository.id), task_id=task.id)


@router.post("/{service_id}/promote", response_model=TrackedServiceResponse)
def promote_step(
    payload: PromoteStepRequest,
    service_id: str = Path(...),
    db: Database = Depends(get_db),
):
    """Make one of the service's next steps its current task."""
    try:
        service = ManifestService(db).promote(service_id, payload.step_index, payload.task_title)
    except IndexError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return TrackedServiceResponse.from_entity(service)
