"""
Suggestion Apply Service and manifest edits written back to GitHub.

Every write uses the compare-and-swap contract of the gateway: the manifest
is re-read for its current content hash right before writing, and a conflict
is surfaced to the caller instead of being retried.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional

from bson import ObjectId
from pymongo.database import Database

from contextflow.commits import promote_next_step, strip_commit_tags
from contextflow.config import settings
from contextflow.entities.commit_suggestion import CommitSuggestion
from contextflow.entities.repository import Repository
from contextflow.entities.tracked_service import TrackedService
from contextflow.manifest import (
    ServiceManifest,
    manifest_from_dict,
    parse_manifest,
    serialize_manifest,
)
from contextflow.repositories import (
    CommitSuggestionRepository,
    RepositoryRepository,
    TrackedServiceRepository,
)
from contextflow.services.github.exceptions import GithubConflictError
from contextflow.services.github.gateway import RepositoryGateway
from contextflow.services.github.github_client import get_repository_gateway
from contextflow.services.notification_service import NotificationManager

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = (
    "The manifest changed since this suggestion was generated; "
    "re-scan and regenerate"
)


class SuggestionError(Exception):
    """Base class for suggestion workflow failures."""


class SuggestionNotFoundError(SuggestionError):
    pass


class SuggestionAlreadyAppliedError(SuggestionError):
    pass


class TrackedServiceNotFoundError(SuggestionError):
    pass


class ManifestConflictError(SuggestionError):
    """The remote manifest no longer has the content the write was derived from."""

    def __init__(self, path: str, message: str = CONFLICT_MESSAGE):
        super().__init__(message)
        self.path = path


@dataclass
class ApplyResult:
    suggestion: CommitSuggestion
    service: TrackedService
    commit_sha: str


def _write_manifest(
    gateway: RepositoryGateway,
    path: str,
    manifest: ServiceManifest,
    commit_message: str,
    expected_content_hash: str,
) -> str:
    try:
        return gateway.write_file(
            path, serialize_manifest(manifest), commit_message, expected_content_hash
        )
    except GithubConflictError as exc:
        logger.warning("Write conflict on %s: %s", path, exc)
        raise ManifestConflictError(path) from exc


class _ManifestWriter:
    def __init__(self, db: Database, gateway_factory=None):
        self.db = db
        self.repo_repo = RepositoryRepository(db)
        self.service_repo = TrackedServiceRepository(db)
        self.gateway_factory = gateway_factory or partial(get_repository_gateway, db)

    def _get_service(self, service_id) -> TrackedService:
        service = self.service_repo.find_by_id(service_id)
        if not service:
            raise TrackedServiceNotFoundError(f"Tracked service {service_id} not found")
        return service

    def _get_repository(self, service: TrackedService) -> Repository:
        repository = self.repo_repo.find_by_id(service.repository_id)
        if not repository or not repository.is_active:
            raise TrackedServiceNotFoundError(
                f"Repository for {service.manifest_path} is not connected"
            )
        return repository


class SuggestionService(_ManifestWriter):
    def __init__(
        self,
        db: Database,
        gateway_factory=None,
        notifier: Optional[NotificationManager] = None,
    ):
        super().__init__(db, gateway_factory)
        self.suggestion_repo = CommitSuggestionRepository(db)
        self.notifier = notifier or NotificationManager(db)

    def list_for_repository(self, repository_id: str | ObjectId) -> List[CommitSuggestion]:
        return self.suggestion_repo.list_pending_for_repository(repository_id)

    def list_for_service(
        self, service_id: str | ObjectId, include_applied: bool = False
    ) -> List[CommitSuggestion]:
        return self.suggestion_repo.list_for_service(service_id, include_applied)

    def get(self, suggestion_id: str | ObjectId) -> CommitSuggestion:
        suggestion = self.suggestion_repo.find_by_id(suggestion_id)
        if not suggestion:
            raise SuggestionNotFoundError(f"Suggestion {suggestion_id} not found")
        return suggestion

    def apply(self, suggestion_id: str | ObjectId) -> ApplyResult:
        suggestion = self.get(suggestion_id)
        if suggestion.applied:
            raise SuggestionAlreadyAppliedError(f"Suggestion {suggestion_id} was already applied")

        service = self._get_service(suggestion.tracked_service_id)
        repository = self._get_repository(service)
        proposed = manifest_from_dict(suggestion.suggested_manifest)

        with self.gateway_factory(repository) as gateway:
            # The hash stored at creation time may be stale; only the fresh one counts
            current = gateway.read_file(service.manifest_path)
            commit_sha = _write_manifest(
                gateway,
                service.manifest_path,
                proposed,
                self._commit_message(proposed, suggestion),
                current.content_hash,
            )

        applied = self.suggestion_repo.mark_applied(suggestion.id, commit_sha)
        refreshed = self.service_repo.update_from_manifest(service.id, proposed)
        logger.info(
            "Applied suggestion %s to %s in commit %s",
            suggestion.id,
            service.manifest_path,
            commit_sha[:7],
        )
        self.notifier.notify_suggestion_applied(repository, service, suggestion)
        return ApplyResult(suggestion=applied, service=refreshed, commit_sha=commit_sha)

    def dismiss(self, suggestion_id: str | ObjectId) -> None:
        suggestion = self.get(suggestion_id)
        if suggestion.applied:
            raise SuggestionAlreadyAppliedError(
                f"Suggestion {suggestion_id} was already applied and cannot be dismissed"
            )
        self.suggestion_repo.delete_one(suggestion.id)
        logger.info("Dismissed suggestion %s", suggestion.id)

    @staticmethod
    def _commit_message(manifest: ServiceManifest, suggestion: CommitSuggestion) -> str:
        original = strip_commit_tags(suggestion.commit_message).strip()
        lines = [
            f"Update {manifest.service_name} manifest",
            "",
            f"Applied suggestion from commit: {suggestion.commit_sha[:7]}",
        ]
        if original:
            lines.append(original)
        lines.extend(["", settings.AUTO_UPDATE_MARKER])
        return "\n".join(lines)


class ManifestService(_ManifestWriter):
    """Direct manifest edits initiated from the board."""

    def promote(
        self,
        service_id: str | ObjectId,
        step_index: int,
        task_title: Optional[str] = None,
    ) -> TrackedService:
        """
        Start work on a next step.

        Raises:
            IndexError: ``step_index`` is not a position in the remote nextSteps.
            ManifestConflictError: the manifest changed between read and write.
        """
        service = self._get_service(service_id)
        repository = self._get_repository(service)

        with self.gateway_factory(repository) as gateway:
            current = gateway.read_file(service.manifest_path)
            manifest = parse_manifest(current.content)
            promoted = promote_next_step(manifest, step_index, task_title)
            _write_manifest(
                gateway,
                service.manifest_path,
                promoted,
                f"Start {promoted.current_task} on {promoted.service_name} {settings.AUTO_UPDATE_MARKER}",
                current.content_hash,
            )

        return self.service_repo.update_from_manifest(service.id, promoted)
