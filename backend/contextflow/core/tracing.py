"""
Per-request / per-task tracing context.

Webhook deliveries use the GitHub delivery id as correlation id; Celery tasks
use their task id. Values live in contextvars so concurrent requests and
threadpool work never see each other's context.

    TracingContext.set(correlation_id=delivery_id, task_name="webhook.push")
    ...
    TracingContext.clear()
"""

import uuid
from contextvars import ContextVar
from typing import Dict

TRACE_FIELDS = ("correlation_id", "repo_id", "delivery_id", "commit_sha", "task_name")

_vars: Dict[str, ContextVar] = {
    name: ContextVar(name, default="") for name in TRACE_FIELDS
}


class TracingContext:
    """Static accessors over the tracing contextvars."""

    @staticmethod
    def set(**fields: str) -> None:
        """Set the given fields; empty values leave the current value untouched."""
        for name, value in fields.items():
            if name not in _vars:
                raise KeyError(f"Unknown tracing field: {name}")
            if value:
                _vars[name].set(value)

    @staticmethod
    def get() -> Dict[str, str]:
        return {name: var.get() for name, var in _vars.items()}

    @staticmethod
    def generate_correlation_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def get_log_prefix() -> str:
        """``[corr=abcd1234]`` for text log lines, empty outside a traced scope."""
        corr = _vars["correlation_id"].get()
        return f"[corr={corr[:8]}]" if corr else ""

    @staticmethod
    def clear() -> None:
        for var in _vars.values():
            var.set("")
