"""
Logging setup for the API process and the Celery workers.

LOG_FORMAT selects the handler format:
- text: one line per record, prefixed with the current correlation id
- json: one JSON object per record carrying the full TracingContext (Loki)
"""

import json
import logging
import sys
from typing import Any, Dict

from contextflow.config import settings
from contextflow.core.tracing import TracingContext

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(trace_prefix)s%(message)s"

QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "pymongo")


class TracingFilter(logging.Filter):
    """Attaches the tracing context to every record passing through the handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        prefix = TracingContext.get_log_prefix()
        record.trace_prefix = f"{prefix} " if prefix else ""
        record.trace = TracingContext.get()
        return True


class JSONFormatter(logging.Formatter):
    """Renders a record and its tracing fields (repo_id, delivery_id, commit_sha...) as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        trace = getattr(record, "trace", None) or TracingContext.get()

        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "line": record.lineno,
        }
        log_record.update({key: value for key, value in trace.items() if value})

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def setup_logging() -> None:
    """Install the stdout handler once; later calls are no-ops."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    root_logger.setLevel(settings.LOG_LEVEL.upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(TracingFilter())
    if settings.LOG_FORMAT.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
