"""
GitHub REST implementation of the remote repository gateway.

One ``GithubRepositoryGateway`` wraps one ``httpx.Client`` bound to a single
repository and credential. Responses are mapped onto the gateway exception
hierarchy; nothing is retried here, callers (Celery tasks) decide.
"""

from __future__ import annotations

import base64
import binascii
import logging
import posixpath
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
from urllib.parse import quote

import httpx
from pymongo.database import Database

from contextflow.config import settings
from contextflow.entities.repository import Repository
from contextflow.services.github.exceptions import (
    GithubConflictError,
    GithubContentError,
    GithubError,
    GithubNotFoundError,
    GithubPermissionError,
    GithubRateLimitError,
    GithubRetryableError,
)
from contextflow.services.github.gateway import (
    CommitRef,
    FileContent,
    FileMatch,
    RemoteRepositoryInfo,
    RepositoryGateway,
)
from contextflow.services.github.token_service import get_repository_access_token
from contextflow.utils.datetime import parse_datetime

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        return str(payload.get("message") or payload)
    return str(payload)


def _retry_after(response: httpx.Response) -> Optional[float]:
    retry_after = response.headers.get("Retry-After")
    if retry_after and retry_after.isdigit():
        return float(retry_after)
    reset = response.headers.get("X-RateLimit-Reset")
    if reset and reset.isdigit():
        return max(float(reset) - time.time(), 0.0)
    return None


def raise_for_github_status(response: httpx.Response, resource: str) -> None:
    """Translate a non-2xx GitHub response into a gateway exception."""
    if response.is_success:
        return

    status = response.status_code
    message = _error_message(response)

    rate_limited = status == 429 or (
        status == 403
        and (
            response.headers.get("X-RateLimit-Remaining") == "0"
            or "rate limit" in message.lower()
        )
    )
    if rate_limited:
        raise GithubRateLimitError(
            f"GitHub rate limit hit on {resource}: {message}",
            retry_after=_retry_after(response),
        )
    if status in (401, 403):
        raise GithubPermissionError(f"Access denied to {resource}: {message}")
    if status == 404:
        raise GithubNotFoundError(f"{resource} not found")
    if status == 409 or (status == 422 and "sha" in message.lower()):
        raise GithubConflictError(f"Conflict on {resource}: {message}", path=resource)
    if status >= 500:
        raise GithubRetryableError(f"GitHub returned {status} for {resource}: {message}")
    raise GithubError(f"GitHub returned {status} for {resource}: {message}")


class GithubRepositoryGateway(RepositoryGateway):
    """Remote repository gateway over the GitHub REST API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self._client = httpx.Client(
            base_url=base_url or settings.GITHUB_API_URL,
            timeout=timeout or settings.GITHUB_REQUEST_TIMEOUT_SECONDS,
            headers={
                "Accept": GITHUB_ACCEPT,
                "Authorization": f"Bearer {token}",
                "X-GitHub-Api-Version": GITHUB_API_VERSION,
                "User-Agent": settings.APP_NAME,
            },
            transport=transport,
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _repo_url(self, suffix: str = "") -> str:
        return f"/repos/{self.owner}/{self.repo}{suffix}"

    def _contents_url(self, path: str) -> str:
        return self._repo_url(f"/contents/{quote(path.lstrip('/'), safe='/')}")

    def _request(
        self,
        method: str,
        url: str,
        resource: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, url, params=params, json=json)
        except httpx.TransportError as exc:
            raise GithubRetryableError(f"Network error talking to GitHub: {exc}") from exc
        raise_for_github_status(response, resource)
        return response

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def read_file(self, path: str) -> FileContent:
        resource = f"{self.full_name}:{path}"
        data = self._request("GET", self._contents_url(path), resource).json()

        if isinstance(data, list) or data.get("type") != "file":
            raise GithubNotFoundError(f"{resource} is not a file")

        raw = data.get("content") or ""
        if data.get("encoding", "base64") == "base64":
            try:
                content = base64.b64decode(raw).decode("utf-8")
            except (binascii.Error, UnicodeDecodeError) as exc:
                raise GithubContentError(f"{resource} is not valid UTF-8 text") from exc
        else:
            content = raw

        return FileContent(path=data.get("path", path), content=content, content_hash=data["sha"])

    def write_file(
        self, path: str, content: str, commit_message: str, expected_content_hash: str
    ) -> str:
        resource = f"{self.full_name}:{path}"
        body = {
            "message": commit_message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if expected_content_hash:
            body["sha"] = expected_content_hash

        response = self._request("PUT", self._contents_url(path), resource, json=body)
        commit_sha = response.json()["commit"]["sha"]
        logger.info("Wrote %s in commit %s", resource, commit_sha[:7])
        return commit_sha

    def search_files_by_name(self, filename: str) -> List[FileMatch]:
        resource = f"{self.full_name} tree"
        try:
            response = self._request(
                "GET",
                self._repo_url("/git/trees/HEAD"),
                resource,
                params={"recursive": "1"},
            )
        except GithubConflictError:
            # GitHub answers 409 for a repository without commits
            logger.info("%s has no commits yet", self.full_name)
            return []

        data = response.json()
        if data.get("truncated"):
            logger.warning(
                "Tree listing for %s was truncated; some %s files may be missed",
                self.full_name,
                filename,
            )

        return [
            FileMatch(path=entry["path"], blob_hash=entry.get("sha", ""))
            for entry in data.get("tree", [])
            if entry.get("type") == "blob" and posixpath.basename(entry["path"]) == filename
        ]

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def list_commits_for_path(self, path: str, limit: int = 30) -> List[CommitRef]:
        response = self._request(
            "GET",
            self._repo_url("/commits"),
            f"{self.full_name} commits for {path}",
            params={"path": path, "per_page": limit},
        )
        commits = []
        for item in response.json():
            commit = item.get("commit") or {}
            author = commit.get("author") or {}
            committer = commit.get("committer") or {}
            commits.append(
                CommitRef(
                    commit_hash=item["sha"],
                    author_date=parse_datetime(author.get("date") or committer.get("date")),
                    message=commit.get("message", ""),
                    author_name=author.get("name", ""),
                )
            )
        return commits

    def latest_commit_for_path(self, path: str) -> Optional[CommitRef]:
        commits = self.list_commits_for_path(path, limit=1)
        return commits[0] if commits else None

    # ------------------------------------------------------------------
    # Webhooks / metadata
    # ------------------------------------------------------------------

    def create_webhook(self, url: str, secret: str) -> int:
        response = self._request(
            "POST",
            self._repo_url("/hooks"),
            f"{self.full_name} hooks",
            json={
                "name": "web",
                "active": True,
                "events": ["push"],
                "config": {
                    "url": url,
                    "content_type": "json",
                    "secret": secret,
                    "insecure_ssl": "0",
                },
            },
        )
        hook_id = response.json()["id"]
        logger.info("Created push webhook %s on %s", hook_id, self.full_name)
        return hook_id

    def delete_webhook(self, webhook_id: int) -> None:
        self._request(
            "DELETE",
            self._repo_url(f"/hooks/{webhook_id}"),
            f"{self.full_name} hook {webhook_id}",
        )

    def get_repository(self) -> RemoteRepositoryInfo:
        data = self._request("GET", self._repo_url(), self.full_name).json()
        return RemoteRepositoryInfo(
            github_repo_id=data["id"],
            owner=(data.get("owner") or {}).get("login", self.owner),
            name=data.get("name", self.repo),
            full_name=data.get("full_name", self.full_name),
            default_branch=data.get("default_branch") or "main",
        )


@contextmanager
def get_repository_gateway(db: Database, repository: Repository) -> Iterator[GithubRepositoryGateway]:
    """Open a gateway for a stored repository using its resolved credential."""
    token = get_repository_access_token(db, repository)
    gateway = GithubRepositoryGateway(repository.owner, repository.name, token)
    try:
        yield gateway
    finally:
        gateway.close()


@contextmanager
def get_user_gateway(owner: str, repo: str, token: str) -> Iterator[GithubRepositoryGateway]:
    """Open a gateway for a repository that is not stored yet (connect flow)."""
    gateway = GithubRepositoryGateway(owner, repo, token)
    try:
        yield gateway
    finally:
        gateway.close()
