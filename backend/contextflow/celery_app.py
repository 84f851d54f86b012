"""Celery application: Redis broker, manifest queues and beat schedule."""

from celery import Celery
from celery.schedules import crontab

from contextflow.config import settings
from contextflow.core.logging import setup_logging

setup_logging()

celery_app = Celery(
    "contextflow",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["contextflow.tasks.manifest_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_queue="manifests",
    task_routes={
        "contextflow.tasks.manifest_tasks.scan_repository": {"queue": "manifests"},
        "contextflow.tasks.manifest_tasks.run_health_check": {"queue": "maintenance"},
    },
    beat_schedule={
        "health-check": {
            "task": "contextflow.tasks.manifest_tasks.run_health_check",
            "schedule": crontab(minute=0, hour=f"*/{settings.HEALTH_CHECK_INTERVAL_HOURS}"),
        },
    },
)
