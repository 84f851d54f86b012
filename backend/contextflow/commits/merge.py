"""Manifest merge engine: current manifest + parsed commit -> proposed manifest."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from contextflow.commits.interpreter import ParsedCommit
from contextflow.entities.enums import ServiceStatus
from contextflow.manifest import ServiceManifest


def merge_next_steps(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Existing steps first, then unseen new ones; exact-string duplicates dropped."""
    seen = set()
    merged = []
    for step in [*existing, *new]:
        if step in seen:
            continue
        seen.add(step)
        merged.append(step)
    return merged


def merge_manifest(
    current: ServiceManifest,
    parsed: ParsedCommit,
    now: Optional[datetime] = None,
) -> ServiceManifest:
    """
    Build the proposed manifest for a commit.

    The result is always a full snapshot. ``current`` is not modified.
    """
    updates = {"last_update": now or datetime.now(timezone.utc)}

    if parsed.status is not None:
        updates["status"] = parsed.status
    if parsed.progress is not None:
        updates["progress"] = parsed.progress
    if parsed.priority is not None:
        updates["priority"] = parsed.priority

    next_steps = merge_next_steps(current.next_steps, parsed.next_steps or [])
    updates["next_steps"] = next_steps

    # A status transition moves the first pending step into currentTask. The
    # step stays in nextSteps until it is explicitly promoted.
    if parsed.status is not None and parsed.status != current.status and next_steps:
        updates["current_task"] = next_steps[0]

    return current.model_copy(update=updates, deep=True)


def promote_next_step(
    manifest: ServiceManifest,
    step_index: int,
    task_title: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ServiceManifest:
    """Start working on a next step: it becomes currentTask and leaves nextSteps."""
    if step_index < 0 or step_index >= len(manifest.next_steps):
        raise IndexError(f"No next step at index {step_index}")

    title = task_title or manifest.next_steps[step_index]
    remaining = [step for i, step in enumerate(manifest.next_steps) if i != step_index]

    return manifest.model_copy(
        update={
            "status": ServiceStatus.IN_PROGRESS,
            "current_task": title,
            "progress": 0,
            "next_steps": remaining,
            "last_update": now or datetime.now(timezone.utc),
        },
        deep=True,
    )
