"""
Manifest Tasks - on-demand repository scans and the periodic health check.

Transient GitHub failures (rate limit, network, 5xx) are retried by Celery;
the gateway itself never retries.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from contextflow.celery_app import celery_app
from contextflow.core.tracing import TracingContext
from contextflow.repositories import RepositoryRepository
from contextflow.services.github.exceptions import GithubRateLimitError, GithubRetryableError
from contextflow.services.health_classifier import HealthClassifier
from contextflow.services.manifest_scanner import ManifestScanner
from contextflow.tasks.base import ManifestTask

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    base=ManifestTask,
    name="contextflow.tasks.manifest_tasks.scan_repository",
    queue="manifests",
    autoretry_for=(GithubRateLimitError, GithubRetryableError),
    retry_backoff=30,
    retry_kwargs={"max_retries": 3},
)
def scan_repository(self: ManifestTask, repository_id: str) -> Dict[str, Any]:
    """Discover and mirror every manifest of one repository."""
    TracingContext.set(repo_id=repository_id)

    repository = RepositoryRepository(self.db).find_by_id(repository_id)
    if not repository or not repository.is_active:
        logger.warning("Scan skipped: repository %s not found or inactive", repository_id)
        return {"status": "skipped", "repository_id": repository_id}

    result = ManifestScanner(self.db).scan(repository)
    logger.info(
        "Scan of %s: %d found, %d created, %d updated, %d error(s)",
        repository.full_name,
        result.total_found,
        len(result.created_paths),
        len(result.updated_paths),
        len(result.errors),
    )
    return {"status": "success", "repository_id": repository_id, **result.to_dict()}


@celery_app.task(
    bind=True,
    base=ManifestTask,
    name="contextflow.tasks.manifest_tasks.run_health_check",
    queue="maintenance",
)
def run_health_check(self: ManifestTask) -> Dict[str, Any]:
    """
    Refresh health status for every tracked service.

    Scheduled via Celery Beat every HEALTH_CHECK_INTERVAL_HOURS.
    """
    summary = HealthClassifier(self.db).run()
    return {
        "status": "success",
        "executed_at": datetime.now(timezone.utc).isoformat(),
        **summary.to_dict(),
    }
