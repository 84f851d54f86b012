"""In-memory stand-ins shared by the service tests."""

import hashlib
import json
import posixpath
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional

from bson import ObjectId

from contextflow.entities.repository import Repository
from contextflow.entities.tracked_service import TrackedService
from contextflow.services.github.exceptions import GithubConflictError, GithubNotFoundError
from contextflow.services.github.gateway import (
    CommitRef,
    FileContent,
    FileMatch,
    RemoteRepositoryInfo,
    RepositoryGateway,
)


def blob_hash(content: str) -> str:
    data = content.encode("utf-8")
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


class InMemoryGateway(RepositoryGateway):
    """Repository gateway over a dict of path -> content."""

    def __init__(self, files: Optional[Dict[str, str]] = None, owner="acme", repo="shop"):
        self.owner = owner
        self.repo = repo
        self.files: Dict[str, str] = dict(files or {})
        self.commits: Dict[str, CommitRef] = {}
        self.failures: Dict[str, Exception] = {}
        self.writes: List[dict] = []
        self.hooks: Dict[int, dict] = {}
        self.reads: List[str] = []

    def _check_failure(self, path: str) -> None:
        if path in self.failures:
            raise self.failures[path]

    def read_file(self, path: str) -> FileContent:
        self._check_failure(path)
        self.reads.append(path)
        if path not in self.files:
            raise GithubNotFoundError(f"{path} not found")
        content = self.files[path]
        return FileContent(path=path, content=content, content_hash=blob_hash(content))

    def write_file(self, path, content, commit_message, expected_content_hash):
        current = self.files.get(path)
        current_hash = blob_hash(current) if current is not None else ""
        if current_hash != (expected_content_hash or ""):
            raise GithubConflictError(f"{path} does not match {expected_content_hash}", path=path)

        self.files[path] = content
        commit_sha = hashlib.sha1(f"{path}:{len(self.writes)}".encode()).hexdigest()
        self.writes.append({"path": path, "message": commit_message, "sha": commit_sha})
        return commit_sha

    def search_files_by_name(self, filename: str) -> List[FileMatch]:
        return [
            FileMatch(path=path, blob_hash=blob_hash(content))
            for path, content in sorted(self.files.items())
            if posixpath.basename(path) == filename
        ]

    def list_commits_for_path(self, path: str, limit: int = 30) -> List[CommitRef]:
        commit = self.latest_commit_for_path(path)
        return [commit] if commit else []

    def latest_commit_for_path(self, path: str) -> Optional[CommitRef]:
        self._check_failure(f"commits:{path}")
        return self.commits.get(path)

    def create_webhook(self, url: str, secret: str) -> int:
        hook_id = len(self.hooks) + 1
        self.hooks[hook_id] = {"url": url, "secret": secret}
        return hook_id

    def delete_webhook(self, webhook_id: int) -> None:
        if webhook_id not in self.hooks:
            raise GithubNotFoundError(f"hook {webhook_id} not found")
        del self.hooks[webhook_id]

    def get_repository(self) -> RemoteRepositoryInfo:
        return RemoteRepositoryInfo(
            github_repo_id=4242,
            owner=self.owner,
            name=self.repo,
            full_name=f"{self.owner}/{self.repo}",
            default_branch="main",
        )


def gateway_factory(gateway: RepositoryGateway):
    """Factory with the signature services expect, always yielding ``gateway``."""

    @contextmanager
    def factory(*args):
        yield gateway

    return factory


def manifest_json(**overrides) -> str:
    data = {
        "serviceName": "auth",
        "status": "In Progress",
        "currentTask": "Implement login",
        "progress": 60,
        "lastUpdate": "2024-05-01T00:00:00Z",
        "nextSteps": [],
    }
    data.update(overrides)
    return json.dumps(data, indent=2) + "\n"


def make_repository(**overrides) -> Repository:
    data = {
        "_id": ObjectId(),
        "owner": "acme",
        "name": "shop",
        "full_name": "acme/shop",
        "github_repo_id": 4242,
        "user_id": ObjectId(),
        "webhook_id": 7,
        "webhook_secret": "s3cret",
        "is_active": True,
    }
    data.update(overrides)
    return Repository(**data)


def make_service(repository: Repository, manifest_path: str, **overrides) -> TrackedService:
    data = {
        "_id": ObjectId(),
        "repository_id": repository.id,
        "manifest_path": manifest_path,
        "service_name": posixpath.basename(posixpath.dirname(manifest_path)) or "root",
        "status": "In Progress",
        "current_task": "Implement login",
        "progress": 60,
        "last_update": datetime(2024, 5, 1, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return TrackedService(**data)


class InMemorySuggestionRepository:
    """Subset of CommitSuggestionRepository backed by a dict."""

    def __init__(self):
        self.items: Dict[ObjectId, object] = {}

    def find_unapplied(self, tracked_service_id, commit_sha):
        for suggestion in self.items.values():
            if (
                suggestion.tracked_service_id == tracked_service_id
                and suggestion.commit_sha == commit_sha
                and not suggestion.applied
            ):
                return suggestion
        return None

    def create_if_absent(self, suggestion):
        existing = self.find_unapplied(suggestion.tracked_service_id, suggestion.commit_sha)
        if existing:
            return existing, False
        suggestion.id = ObjectId()
        self.items[suggestion.id] = suggestion
        return suggestion, True

    def find_by_id(self, suggestion_id):
        return self.items.get(ObjectId(str(suggestion_id)))

    def mark_applied(self, suggestion_id, applied_commit_sha):
        suggestion = self.items[suggestion_id]
        updated = suggestion.model_copy(
            update={
                "applied": True,
                "applied_at": datetime.now(timezone.utc),
                "applied_commit_sha": applied_commit_sha,
            }
        )
        self.items[suggestion_id] = updated
        return updated

    def delete_one(self, suggestion_id):
        return self.items.pop(suggestion_id, None) is not None
