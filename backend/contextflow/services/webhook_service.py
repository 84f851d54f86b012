"""
Push event processing: commits -> manifest update suggestions.

For every tagged commit of a push, the affected manifests are re-read from the
remote repository, merged with the commit's directives and stored as
CommitSuggestions. A failure on one (commit, manifest) pair is recorded and
processing continues with the next one.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Iterable, List, Optional

from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from contextflow.commits import CommitAuthorInfo, ParsedCommit, interpret_commit, merge_manifest
from contextflow.config import settings
from contextflow.core.tracing import TracingContext
from contextflow.dtos.webhook import PushCommit, PushEvent
from contextflow.entities.commit_suggestion import CommitAuthor, CommitSuggestion
from contextflow.entities.repository import Repository
from contextflow.entities.tracked_service import TrackedService
from contextflow.manifest import (
    ManifestValidationError,
    manifest_directory,
    manifest_to_dict,
    parse_manifest,
)
from contextflow.repositories import (
    CommitSuggestionRepository,
    RepositoryRepository,
    TrackedServiceRepository,
)
from contextflow.services.github.exceptions import GithubConfigurationError, GithubError
from contextflow.services.github.gateway import RepositoryGateway
from contextflow.services.github.github_client import get_repository_gateway
from contextflow.services.notification_service import NotificationManager

logger = logging.getLogger(__name__)

GatewayFactory = Callable[[Repository], AbstractContextManager[RepositoryGateway]]


@dataclass
class PushProcessingResult:
    repository_tracked: bool
    commits_processed: int = 0
    suggestions_created: int = 0
    suggestions_existing: int = 0
    errors: List[str] = field(default_factory=list)


def _normalize_path(path: str) -> str:
    return path.strip().strip("/")


def _commit_label(index: int, raw: Any) -> str:
    commit_id = raw.get("id") if isinstance(raw, dict) else None
    if isinstance(commit_id, str) and commit_id:
        return f"commit {index} ({commit_id[:7]})"
    return f"commit {index}"


def _in_directory(path: str, directory: str) -> bool:
    if not directory:
        return True
    return path == directory or path.startswith(directory + "/")


def find_affected_manifests(
    changed_files: Iterable[str], services: Iterable[TrackedService]
) -> List[TrackedService]:
    """
    Manifests touched by a commit.

    Manifests whose own path was changed win. Otherwise a manifest is affected
    when any changed file lives in its directory (matched per path segment, so
    ``services/auth`` does not claim ``services/authz/...``).
    """
    changed = [_normalize_path(f) for f in changed_files if f and f.strip()]
    services = list(services)
    if not changed:
        return []

    changed_set = set(changed)
    direct = [s for s in services if _normalize_path(s.manifest_path) in changed_set]
    if direct:
        return direct

    return [
        service
        for service in services
        if any(_in_directory(path, manifest_directory(service.manifest_path)) for path in changed)
    ]


class WebhookService:
    def __init__(
        self,
        db: Database,
        gateway_factory: Optional[GatewayFactory] = None,
        notifier: Optional[NotificationManager] = None,
    ):
        self.db = db
        self.repo_repo = RepositoryRepository(db)
        self.service_repo = TrackedServiceRepository(db)
        self.suggestion_repo = CommitSuggestionRepository(db)
        self.gateway_factory = gateway_factory or partial(get_repository_gateway, db)
        self.notifier = notifier or NotificationManager(db)

    def find_repository(self, github_repo_id: int) -> Optional[Repository]:
        return self.repo_repo.find_active_by_github_id(github_repo_id)

    def process_push(
        self, event: PushEvent, repository: Optional[Repository] = None
    ) -> PushProcessingResult:
        repository = repository or self.find_repository(event.repository.id)
        if repository is None:
            logger.info("Push for untracked repository %s ignored", event.repository.id)
            return PushProcessingResult(repository_tracked=False)

        TracingContext.set(repo_id=str(repository.id))
        result = PushProcessingResult(repository_tracked=True)

        services = self.service_repo.find_by_repository(repository.id)
        if not services:
            logger.info("%s has no tracked manifests", repository.full_name)
            return result

        try:
            with self.gateway_factory(repository) as gateway:
                # Commits run in push order so later directives land in later suggestions
                for index, raw in enumerate(event.commits):
                    try:
                        commit = PushCommit.model_validate(raw)
                    except ValidationError as exc:
                        label = _commit_label(index, raw)
                        logger.warning("Skipping invalid commit %s: %s", label, exc)
                        result.errors.append(f"{label}: invalid commit")
                        continue
                    self._process_commit(gateway, repository, services, commit, result)
        except GithubConfigurationError as exc:
            logger.error("Cannot process push for %s: %s", repository.full_name, exc)
            result.errors.append(str(exc))

        logger.info(
            "Push on %s: %d commit(s) processed, %d suggestion(s) created, %d error(s)",
            repository.full_name,
            result.commits_processed,
            result.suggestions_created,
            len(result.errors),
        )
        return result

    def _process_commit(
        self,
        gateway: RepositoryGateway,
        repository: Repository,
        services: List[TrackedService],
        commit: PushCommit,
        result: PushProcessingResult,
    ) -> None:
        if settings.AUTO_UPDATE_MARKER in commit.message:
            logger.debug("Skipping auto-update commit %s", commit.id[:7])
            return

        TracingContext.set(commit_sha=commit.id)
        parsed = interpret_commit(
            commit.id,
            commit.message,
            CommitAuthorInfo(
                name=commit.author.name,
                email=commit.author.email,
                date=commit.authored_at,
            ),
        )
        if not parsed.has_tags:
            return

        result.commits_processed += 1
        for service in find_affected_manifests(commit.changed_files, services):
            try:
                created = self.suggest(gateway, repository, service, parsed)
            except (GithubError, ManifestValidationError, PyMongoError) as exc:
                logger.warning(
                    "Suggestion for %s at %s failed: %s",
                    service.manifest_path,
                    commit.id[:7],
                    exc,
                )
                result.errors.append(f"{commit.id[:7]} {service.manifest_path}: {exc}")
                continue

            if created:
                result.suggestions_created += 1
            else:
                result.suggestions_existing += 1

    def suggest(
        self,
        gateway: RepositoryGateway,
        repository: Repository,
        service: TrackedService,
        parsed: ParsedCommit,
    ) -> bool:
        """Create the suggestion for one (manifest, commit). Returns False if it already existed."""
        if self.suggestion_repo.find_unapplied(service.id, parsed.sha):
            return False

        remote = gateway.read_file(service.manifest_path)
        current = parse_manifest(remote.content)
        proposed = merge_manifest(current, parsed)

        suggestion, created = self.suggestion_repo.create_if_absent(
            CommitSuggestion(
                tracked_service_id=service.id,
                repository_id=repository.id,
                commit_sha=parsed.sha,
                commit_message=parsed.message,
                author=CommitAuthor(
                    name=parsed.author.name,
                    email=parsed.author.email,
                    date=parsed.author.date,
                ),
                parsed_status=parsed.status,
                parsed_next_steps=parsed.next_steps,
                suggested_manifest=manifest_to_dict(proposed),
                base_content_hash=remote.content_hash,
            )
        )
        if created:
            self.notifier.notify_suggestion_created(repository, service, suggestion, parsed)
        return created
