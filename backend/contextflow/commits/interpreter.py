"""Turn a commit message into structured manifest deltas."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from contextflow.commits.tag_parser import (
    CommitTag,
    CommitTagType,
    is_valid_progress,
    parse_commit_tags,
    tags_of_type,
    validate_commit_tags,
)
from contextflow.entities.enums import Priority, ServiceStatus

logger = logging.getLogger(__name__)

TAG_STATUS_MAP: Dict[str, ServiceStatus] = {
    "BACKLOG": ServiceStatus.BACKLOG,
    "IN_PROGRESS": ServiceStatus.IN_PROGRESS,
    "TESTING": ServiceStatus.TESTING,
    "DONE": ServiceStatus.DONE,
}


@dataclass
class CommitAuthorInfo:
    name: str = ""
    email: str = ""
    date: Optional[datetime] = None


@dataclass
class ParsedCommit:
    sha: str
    message: str
    author: CommitAuthorInfo
    tags: List[CommitTag] = field(default_factory=list)

    # Present only when the corresponding tag appeared with a usable value
    status: Optional[ServiceStatus] = None
    next_steps: Optional[List[str]] = None
    progress: Optional[int] = None
    priority: Optional[Priority] = None

    warnings: List[str] = field(default_factory=list)

    @property
    def has_tags(self) -> bool:
        return bool(self.tags)


def tag_status_to_service_status(value: str) -> Optional[ServiceStatus]:
    return TAG_STATUS_MAP.get(value.strip().upper())


def interpret_commit(
    sha: str,
    message: str,
    author: Optional[CommitAuthorInfo] = None,
) -> ParsedCommit:
    tags = parse_commit_tags(message)
    parsed = ParsedCommit(
        sha=sha,
        message=message or "",
        author=author or CommitAuthorInfo(),
        tags=tags,
    )
    if not tags:
        return parsed

    validation = validate_commit_tags(message)
    parsed.warnings = validation.warnings + validation.errors
    for warning in parsed.warnings:
        logger.warning("Commit %s: %s", sha[:7], warning)

    status_tags = tags_of_type(tags, CommitTagType.STATUS)
    if status_tags:
        parsed.status = tag_status_to_service_status(status_tags[0].value)

    next_tags = tags_of_type(tags, CommitTagType.NEXT)
    if next_tags:
        parsed.next_steps = [tag.value.strip() for tag in next_tags]

    progress_tags = tags_of_type(tags, CommitTagType.PROGRESS)
    if progress_tags and is_valid_progress(progress_tags[0].value):
        parsed.progress = int(progress_tags[0].value.strip())

    priority_tags = tags_of_type(tags, CommitTagType.PRIORITY)
    if priority_tags:
        try:
            parsed.priority = Priority(priority_tags[0].value.strip().upper())
        except ValueError:
            parsed.priority = None

    return parsed


def summarize_commit(parsed: ParsedCommit) -> str:
    """One-line summary of what a commit would change."""
    parts = []
    if parsed.status:
        parts.append(f"Status -> {parsed.status.value}")
    if parsed.progress is not None:
        parts.append(f"Progress -> {parsed.progress}%")
    if parsed.next_steps:
        parts.append(f"Next: {', '.join(parsed.next_steps)}")
    if parsed.priority:
        parts.append(f"Priority: {parsed.priority.value}")
    return " | ".join(parts) or "No changes detected"
