"""
Manifest Scanner - discover every manifest in a repository and mirror it.

The remote file is the source of truth: existing TrackedServices are
overwritten with what the repository holds, new paths become new services.
Unreadable or invalid manifests are reported and skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional

from pymongo.database import Database

from contextflow.config import settings
from contextflow.entities.repository import Repository
from contextflow.manifest import ManifestValidationError, parse_manifest
from contextflow.repositories import RepositoryRepository, TrackedServiceRepository
from contextflow.services.github.exceptions import (
    GithubContentError,
    GithubNotFoundError,
    GithubPermissionError,
)
from contextflow.services.github.gateway import RepositoryGateway
from contextflow.services.github.github_client import get_repository_gateway
from contextflow.services.health_classifier import classify_health
from contextflow.services.notification_service import NotificationManager
from contextflow.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ScanError:
    path: str
    error: str


@dataclass
class ScanResult:
    total_found: int = 0
    created_paths: List[str] = field(default_factory=list)
    updated_paths: List[str] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_found": self.total_found,
            "created": len(self.created_paths),
            "updated": len(self.updated_paths),
            "created_paths": list(self.created_paths),
            "updated_paths": list(self.updated_paths),
            "errors": [error.__dict__ for error in self.errors],
        }


class ManifestScanner:
    def __init__(
        self,
        db: Database,
        gateway_factory=None,
        notifier: Optional[NotificationManager] = None,
    ):
        self.db = db
        self.repo_repo = RepositoryRepository(db)
        self.service_repo = TrackedServiceRepository(db)
        self.gateway_factory = gateway_factory or partial(get_repository_gateway, db)
        self.notifier = notifier or NotificationManager(db)

    def scan(self, repository: Repository) -> ScanResult:
        """
        Scan ``repository`` for manifest files.

        Transient GitHub errors propagate so the calling task can retry; the
        scan is idempotent per path.
        """
        result = ScanResult()

        with self.gateway_factory(repository) as gateway:
            matches = gateway.search_files_by_name(settings.MANIFEST_FILENAME)
            result.total_found = len(matches)
            logger.info(
                "Found %d %s file(s) in %s",
                len(matches),
                settings.MANIFEST_FILENAME,
                repository.full_name,
            )
            for match in matches:
                self._scan_path(gateway, repository, match.path, result)

        self.repo_repo.mark_scanned(repository.id)
        self.notifier.notify_scan_completed(repository, result.total_found, len(result.errors))
        return result

    def _scan_path(
        self,
        gateway: RepositoryGateway,
        repository: Repository,
        path: str,
        result: ScanResult,
    ) -> None:
        try:
            remote = gateway.read_file(path)
            manifest = parse_manifest(remote.content)
        except ManifestValidationError as exc:
            logger.warning("Invalid manifest %s in %s: %s", path, repository.full_name, exc)
            result.errors.append(ScanError(path=path, error=f"Invalid manifest: {exc}"))
            return
        except (GithubContentError, GithubNotFoundError, GithubPermissionError) as exc:
            result.errors.append(ScanError(path=path, error=str(exc)))
            return

        health: Dict[str, Any] = {}
        try:
            commit = gateway.latest_commit_for_path(path)
        except (GithubNotFoundError, GithubPermissionError) as exc:
            result.errors.append(ScanError(path=path, error=f"Health lookup failed: {exc}"))
        else:
            last_commit_date = commit.author_date if commit else None
            health = {
                "health_status": classify_health(last_commit_date).value,
                "last_commit_date": last_commit_date,
                "last_health_check_at": utc_now(),
            }

        _, created = self.service_repo.upsert_from_manifest(
            repository.id, path, manifest, extra=health
        )
        (result.created_paths if created else result.updated_paths).append(path)
