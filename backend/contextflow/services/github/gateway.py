"""
Remote Repository Gateway interface.

Every operation is scoped to one (owner, repo, credential) and keeps no state
between calls. Implementations raise the exceptions in
``contextflow.services.github.exceptions``:

- ``GithubNotFoundError`` for a missing file/repository/hook
- ``GithubPermissionError`` for a rejected credential
- ``GithubConflictError`` when ``write_file``'s expected hash is stale
- ``GithubRateLimitError`` / ``GithubRetryableError`` for transient failures
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class FileContent:
    path: str
    content: str
    content_hash: str


@dataclass(frozen=True)
class FileMatch:
    path: str
    blob_hash: str


@dataclass(frozen=True)
class CommitRef:
    commit_hash: str
    author_date: Optional[datetime]
    message: str = ""
    author_name: str = ""


@dataclass(frozen=True)
class RemoteRepositoryInfo:
    github_repo_id: int
    owner: str
    name: str
    full_name: str
    default_branch: str


class RepositoryGateway(ABC):
    """Capability interface over one remote repository."""

    owner: str
    repo: str

    @abstractmethod
    def read_file(self, path: str) -> FileContent:
        ...

    @abstractmethod
    def write_file(
        self, path: str, content: str, commit_message: str, expected_content_hash: str
    ) -> str:
        """Write ``content`` only if the file's current hash equals the expected one.

        Returns the new commit hash.
        """

    @abstractmethod
    def search_files_by_name(self, filename: str) -> List[FileMatch]:
        """Every blob in the full tree whose basename equals ``filename``."""

    @abstractmethod
    def list_commits_for_path(self, path: str, limit: int = 30) -> List[CommitRef]:
        ...

    @abstractmethod
    def latest_commit_for_path(self, path: str) -> Optional[CommitRef]:
        ...

    @abstractmethod
    def create_webhook(self, url: str, secret: str) -> int:
        ...

    @abstractmethod
    def delete_webhook(self, webhook_id: int) -> None:
        ...

    @abstractmethod
    def get_repository(self) -> RemoteRepositoryInfo:
        ...

    def close(self) -> None:
        """Release transport resources."""

    def __enter__(self) -> "RepositoryGateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
