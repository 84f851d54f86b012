"""
Commit tag parsing.

Commit messages may carry bracketed directives:

    [STATUS:BACKLOG|IN_PROGRESS|TESTING|DONE]
    [NEXT:<free text>]        (repeatable, cumulative)
    [PROGRESS:<0-100>]
    [PRIORITY:P1|P2|P3]

The keyword is matched case-insensitively. Values are captured literally so
that malformed tags (``[PROGRESS:150]``, ``[STATUS:SHIPPED]``) still show up
in the tag list; deciding whether a value is usable is the interpreter's job.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional

# Longer messages are truncated before scanning
MAX_MESSAGE_LENGTH = 65536

# A value is free text up to the next "]"; one linear pass, no nested quantifiers
_TAG_PATTERN = re.compile(
    r"\[(STATUS|NEXT|PROGRESS|PRIORITY):([^\]]+)\]",
    re.IGNORECASE,
)

_PROGRESS_VALUE = re.compile(r"\d{1,3}", re.ASCII)

STATUS_VALUES = ("BACKLOG", "IN_PROGRESS", "TESTING", "DONE")
PRIORITY_VALUES = ("P1", "P2", "P3")


class CommitTagType(str, Enum):
    STATUS = "STATUS"
    NEXT = "NEXT"
    PROGRESS = "PROGRESS"
    PRIORITY = "PRIORITY"


@dataclass(frozen=True)
class CommitTag:
    type: CommitTagType
    value: str
    raw: str


@dataclass
class TagValidation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def parse_commit_tags(message: Optional[str]) -> List[CommitTag]:
    """Extract every tag from a commit message, in order of appearance."""
    if not message:
        return []

    tags: List[CommitTag] = []
    for match in _TAG_PATTERN.finditer(message[:MAX_MESSAGE_LENGTH]):
        tag_type = CommitTagType(match.group(1).upper())
        value = match.group(2)
        if tag_type is CommitTagType.NEXT:
            value = value.strip()
            if not value:
                continue
        tags.append(CommitTag(type=tag_type, value=value, raw=match.group(0)))
    return tags


def has_commit_tags(message: Optional[str]) -> bool:
    return bool(parse_commit_tags(message))


def tags_of_type(tags: Iterable[CommitTag], tag_type: CommitTagType) -> List[CommitTag]:
    return [tag for tag in tags if tag.type is tag_type]


def is_valid_progress(value: str) -> bool:
    value = value.strip()
    return bool(_PROGRESS_VALUE.fullmatch(value)) and 0 <= int(value) <= 100


def validate_commit_tags(message: Optional[str]) -> TagValidation:
    """Report unusable tag values (errors) and ignored duplicates (warnings)."""
    result = TagValidation()
    tags = parse_commit_tags(message)

    status_tags = tags_of_type(tags, CommitTagType.STATUS)
    for tag in status_tags:
        if tag.value.strip().upper() not in STATUS_VALUES:
            result.errors.append(
                f"Invalid status value: {tag.value}. Must be BACKLOG, IN_PROGRESS, TESTING, or DONE"
            )

    progress_tags = tags_of_type(tags, CommitTagType.PROGRESS)
    for tag in progress_tags:
        if not is_valid_progress(tag.value):
            result.errors.append(
                f"Invalid progress value: {tag.value}. Must be between 0 and 100"
            )

    for tag in tags_of_type(tags, CommitTagType.PRIORITY):
        if tag.value.strip().upper() not in PRIORITY_VALUES:
            result.errors.append(
                f"Invalid priority value: {tag.value}. Must be P1, P2, or P3"
            )

    if len(status_tags) > 1:
        result.warnings.append("Multiple STATUS tags found. Only the first will be used.")
    if len(progress_tags) > 1:
        result.warnings.append("Multiple PROGRESS tags found. Only the first will be used.")

    return result


def format_commit_tags(message: str, tags: Iterable[CommitTag]) -> str:
    """Append tags to a message, e.g. for commit templates and examples."""
    parts = [message] if message else []
    parts.extend(f"[{tag.type.value}:{tag.value}]" for tag in tags)
    return " ".join(parts)


def format_tag_values(
    message: str,
    *,
    status: Optional[str] = None,
    next_steps: Optional[List[str]] = None,
    progress: Optional[int] = None,
    priority: Optional[str] = None,
) -> str:
    """Build a tagged commit message from plain values ("In Progress" -> IN_PROGRESS)."""
    tags: List[CommitTag] = []
    if status:
        value = status.upper().replace(" ", "_")
        tags.append(CommitTag(CommitTagType.STATUS, value, f"[STATUS:{value}]"))
    for step in next_steps or []:
        tags.append(CommitTag(CommitTagType.NEXT, step, f"[NEXT:{step}]"))
    if progress is not None:
        tags.append(CommitTag(CommitTagType.PROGRESS, str(progress), f"[PROGRESS:{progress}]"))
    if priority:
        tags.append(CommitTag(CommitTagType.PRIORITY, priority, f"[PRIORITY:{priority}]"))
    return format_commit_tags(message, tags)


def strip_commit_tags(message: str) -> str:
    """Message text with every tag removed and whitespace collapsed."""
    return " ".join(_TAG_PATTERN.sub(" ", message[:MAX_MESSAGE_LENGTH]).split())

