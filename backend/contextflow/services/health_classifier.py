"""
Health Classifier - staleness buckets for tracked services.

The bucket is derived from the author date of the latest commit touching the
manifest path:

    < 7 days   Healthy
    7..29 days Stale
    >= 30 days Inactive
    no commit  Unknown

The batch run persists status and commit date for every service, changed or
not, and keeps going when individual services fail.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from contextflow.config import settings
from contextflow.entities.enums import HealthStatus
from contextflow.entities.tracked_service import TrackedService
from contextflow.repositories import RepositoryRepository, TrackedServiceRepository
from contextflow.services.github.exceptions import GithubError
from contextflow.services.github.gateway import RepositoryGateway
from contextflow.services.github.github_client import get_repository_gateway
from contextflow.utils.datetime import ensure_aware_utc, utc_now

logger = logging.getLogger(__name__)

HEALTHY_DAYS = 7
STALE_DAYS = 30


def classify_health(
    last_commit_date: Optional[datetime], now: Optional[datetime] = None
) -> HealthStatus:
    if last_commit_date is None:
        return HealthStatus.UNKNOWN

    now = ensure_aware_utc(now) if now else utc_now()
    days_since = (now - ensure_aware_utc(last_commit_date)).days

    if days_since < HEALTHY_DAYS:
        return HealthStatus.HEALTHY
    if days_since < STALE_DAYS:
        return HealthStatus.STALE
    return HealthStatus.INACTIVE


@dataclass
class HealthCheckError:
    tracked_service_id: str
    manifest_path: str
    error: str


@dataclass
class HealthCheckSummary:
    counts: Dict[str, int] = field(
        default_factory=lambda: {status.value: 0 for status in HealthStatus}
    )
    errors: List[HealthCheckError] = field(default_factory=list)

    @property
    def checked(self) -> int:
        return sum(self.counts.values())

    def record(self, status: HealthStatus) -> None:
        self.counts[status.value] += 1

    def record_error(self, service: TrackedService, exc: Exception) -> None:
        self.errors.append(
            HealthCheckError(
                tracked_service_id=str(service.id),
                manifest_path=service.manifest_path,
                error=str(exc),
            )
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "checked": self.checked,
            "counts": dict(self.counts),
            "errors": [error.__dict__ for error in self.errors],
        }


class HealthClassifier:
    """Refreshes health_status for every service of every active repository."""

    def __init__(
        self,
        db: Database,
        gateway_factory=None,
        max_workers: Optional[int] = None,
    ):
        self.db = db
        self.repo_repo = RepositoryRepository(db)
        self.service_repo = TrackedServiceRepository(db)
        self.gateway_factory = gateway_factory or partial(get_repository_gateway, db)
        self.max_workers = max_workers or settings.HEALTH_CHECK_MAX_WORKERS

    def check_service(
        self, service: TrackedService, gateway: RepositoryGateway, now: datetime
    ) -> HealthStatus:
        commit = gateway.latest_commit_for_path(service.manifest_path)
        last_commit_date = commit.author_date if commit else None
        status = classify_health(last_commit_date, now)
        self.service_repo.update_health(service.id, status, last_commit_date)
        return status

    def run(self, now: Optional[datetime] = None) -> HealthCheckSummary:
        now = now or utc_now()
        summary = HealthCheckSummary()

        repositories = {repo.id: repo for repo in self.repo_repo.list_active()}
        services = self.service_repo.find_by_repositories(list(repositories))
        if not services:
            logger.info("Health check: no tracked services")
            return summary

        with ExitStack() as stack:
            gateways: Dict[Any, RepositoryGateway | GithubError] = {}
            jobs = []
            for service in services:
                repository = repositories[service.repository_id]
                if repository.id not in gateways:
                    try:
                        gateways[repository.id] = stack.enter_context(
                            self.gateway_factory(repository)
                        )
                    except GithubError as exc:
                        logger.warning("No gateway for %s: %s", repository.full_name, exc)
                        gateways[repository.id] = exc

                gateway = gateways[repository.id]
                if isinstance(gateway, GithubError):
                    summary.record_error(service, gateway)
                    continue
                jobs.append((service, gateway))

            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {
                    pool.submit(self.check_service, service, gateway, now): service
                    for service, gateway in jobs
                }
                for future in as_completed(futures):
                    service = futures[future]
                    try:
                        summary.record(future.result())
                    except (GithubError, PyMongoError) as exc:
                        logger.warning(
                            "Health check failed for %s: %s", service.manifest_path, exc
                        )
                        summary.record_error(service, exc)

        logger.info(
            "Health check finished: %s, %d error(s)", summary.counts, len(summary.errors)
        )
        return summary
