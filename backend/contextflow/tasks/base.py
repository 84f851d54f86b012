"""Base class for ContextFlow Celery tasks."""

import logging

from celery import Task
from pymongo.database import Database

from contextflow.core.tracing import TracingContext
from contextflow.database.mongo import get_database

logger = logging.getLogger(__name__)


class ManifestTask(Task):
    """Provides a database handle and per-task tracing context."""

    abstract = True
    _db: Database | None = None

    @property
    def db(self) -> Database:
        if self._db is None:
            self._db = get_database()
        return self._db

    def before_start(self, task_id, args, kwargs):
        TracingContext.set(
            correlation_id=task_id,
            task_name=self.name,
        )

    def after_return(self, status, retval, task_id, args, kwargs, einfo):
        TracingContext.clear()

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error("Task %s[%s] failed: %s", self.name, task_id, exc)
