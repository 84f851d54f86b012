from .interpreter import (
    CommitAuthorInfo,
    ParsedCommit,
    interpret_commit,
    summarize_commit,
    tag_status_to_service_status,
)
from .merge import merge_manifest, merge_next_steps, promote_next_step
from .tag_parser import (
    CommitTag,
    CommitTagType,
    TagValidation,
    format_commit_tags,
    format_tag_values,
    has_commit_tags,
    parse_commit_tags,
    strip_commit_tags,
    validate_commit_tags,
)

__all__ = [
    "CommitAuthorInfo",
    "CommitTag",
    "CommitTagType",
    "ParsedCommit",
    "TagValidation",
    "format_commit_tags",
    "format_tag_values",
    "has_commit_tags",
    "interpret_commit",
    "merge_manifest",
    "merge_next_steps",
    "parse_commit_tags",
    "promote_next_step",
    "strip_commit_tags",
    "summarize_commit",
    "tag_status_to_service_status",
    "validate_commit_tags",
]
