"""Connecting and disconnecting GitHub repositories."""

from __future__ import annotations

import logging
from functools import partial
from typing import Callable, Optional

from bson import ObjectId
from pymongo.database import Database

from contextflow.config import settings
from contextflow.entities.repository import Repository
from contextflow.repositories import (
    CommitSuggestionRepository,
    RepositoryRepository,
    TrackedServiceRepository,
)
from contextflow.services.github.exceptions import (
    GithubConfigurationError,
    GithubError,
    GithubPermissionError,
)
from contextflow.services.github.github_client import get_repository_gateway, get_user_gateway
from contextflow.services.github.token_service import get_user_access_token
from contextflow.services.github.webhook_security import generate_webhook_secret

logger = logging.getLogger(__name__)


class RepositoryNotFoundError(Exception):
    pass


def _enqueue_scan(repository_id: str) -> None:
    from contextflow.tasks.manifest_tasks import scan_repository

    scan_repository.delay(repository_id)


class RepositoryService:
    def __init__(
        self,
        db: Database,
        gateway_factory=None,
        user_gateway_factory=None,
        enqueue_scan: Optional[Callable[[str], None]] = None,
    ):
        self.db = db
        self.repo_repo = RepositoryRepository(db)
        self.service_repo = TrackedServiceRepository(db)
        self.suggestion_repo = CommitSuggestionRepository(db)
        self.gateway_factory = gateway_factory or partial(get_repository_gateway, db)
        self.user_gateway_factory = user_gateway_factory or get_user_gateway
        self.enqueue_scan = enqueue_scan or _enqueue_scan

    def list_repositories(self, user_id: Optional[str] = None):
        return self.repo_repo.list_by_user(user_id)

    def get(self, repository_id: str | ObjectId) -> Repository:
        repository = self.repo_repo.find_by_id(repository_id)
        if not repository:
            raise RepositoryNotFoundError(f"Repository {repository_id} not found")
        return repository

    def connect(
        self,
        user_id: Optional[str],
        owner: str,
        name: str,
        setup_webhook: bool = True,
    ) -> Repository:
        """
        Start tracking ``owner/name``.

        Registers a push webhook with a fresh secret unless one is already in
        place, then queues a manifest scan.
        """
        token = None
        if user_id:
            token = get_user_access_token(self.db, ObjectId(user_id))
        token = token or settings.GITHUB_TOKEN
        if not token:
            raise GithubConfigurationError(f"No GitHub credential to connect {owner}/{name}")

        with self.user_gateway_factory(owner, name, token) as gateway:
            info = gateway.get_repository()
            repository = self.repo_repo.upsert_connected(
                user_id=user_id,
                owner=info.owner,
                name=info.name,
                full_name=info.full_name,
                github_repo_id=info.github_repo_id,
                default_branch=info.default_branch,
            )

            if setup_webhook and not repository.webhook_id:
                secret = generate_webhook_secret()
                try:
                    webhook_id = gateway.create_webhook(settings.PUBLIC_WEBHOOK_URL, secret)
                except GithubPermissionError as exc:
                    logger.warning(
                        "Connected %s without a webhook (no admin access): %s",
                        info.full_name,
                        exc,
                    )
                else:
                    repository = self.repo_repo.set_webhook(repository.id, webhook_id, secret)

        logger.info("Connected repository %s (%s)", repository.full_name, repository.id)
        self.enqueue_scan(str(repository.id))
        return repository

    def disconnect(self, repository_id: str | ObjectId) -> Repository:
        """Stop tracking a repository; its services and suggestions are removed."""
        repository = self.get(repository_id)

        if repository.webhook_id:
            try:
                with self.gateway_factory(repository) as gateway:
                    gateway.delete_webhook(repository.webhook_id)
            except GithubError as exc:
                # The hook may already be gone on GitHub's side
                logger.warning(
                    "Could not delete webhook %s on %s: %s",
                    repository.webhook_id,
                    repository.full_name,
                    exc,
                )

        removed_suggestions = self.suggestion_repo.delete_by_repository(repository.id)
        removed_services = self.service_repo.delete_by_repository(repository.id)
        repository = self.repo_repo.deactivate(repository.id)
        logger.info(
            "Disconnected %s: removed %d service(s), %d suggestion(s)",
            repository.full_name,
            removed_services,
            removed_suggestions,
        )
        return repository
