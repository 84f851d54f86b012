"""Repository connection endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from pymongo.database import Database

from contextflow.database.mongo import get_db
from contextflow.dtos import RepoConnectRequest, RepoResponse
from contextflow.services.repository_service import RepositoryService

router = APIRouter(prefix="/repos", tags=["Repositories"])


def get_repository_service(db: Database = Depends(get_db)) -> RepositoryService:
    return RepositoryService(db)


@router.get("", response_model=List[RepoResponse])
def list_repositories(
    user_id: Optional[str] = Query(default=None),
    service: RepositoryService = Depends(get_repository_service),
):
    """List connected repositories."""
    return [RepoResponse.from_entity(repo) for repo in service.list_repositories(user_id)]


@router.post("", response_model=RepoResponse, status_code=status.HTTP_201_CREATED)
def connect_repository(
    payload: RepoConnectRequest,
    service: RepositoryService = Depends(get_repository_service),
):
    """Connect a repository, register its push webhook and queue a manifest scan."""
    repository = service.connect(
        user_id=payload.user_id,
        owner=payload.owner,
        name=payload.name,
        setup_webhook=payload.setup_webhook,
    )
    return RepoResponse.from_entity(repository)


@router.get("/{repo_id}", response_model=RepoResponse)
def get_repository(
    repo_id: str = Path(...),
    service: RepositoryService = Depends(get_repository_service),
):
    return RepoResponse.from_entity(service.get(repo_id))


@router.delete("/{repo_id}", response_model=RepoResponse)
def disconnect_repository(
    repo_id: str = Path(...),
    service: RepositoryService = Depends(get_repository_service),
):
    """Disconnect a repository. Its tracked services and suggestions are removed."""
    return RepoResponse.from_entity(service.disconnect(repo_id))
