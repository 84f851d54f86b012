"""
vibe.json manifest schema.

A manifest is the per-service status document committed next to the service
code. Field names on disk are camelCase; the model exposes snake_case
attributes. Unknown keys are preserved so a read-merge-write cycle never drops
data a human put in the file.
"""

from __future__ import annotations

import json
import posixpath
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from contextflow.entities.enums import Priority, ServiceStatus


class ManifestValidationError(ValueError):
    """Raised when manifest content is not valid JSON or fails the schema."""


class ServiceManifest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    service_name: str = Field(..., min_length=1)
    status: ServiceStatus
    current_task: str = Field(..., min_length=1)
    progress: int = Field(..., ge=0, le=100)
    last_update: datetime
    next_steps: List[str]
    dependencies: Optional[List[str]] = None
    priority: Optional[Priority] = None
    assignee: Optional[str] = None
    estimated_completion: Optional[datetime] = None


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return ", ".join(parts)


def manifest_from_dict(data: Dict[str, Any]) -> ServiceManifest:
    try:
        return ServiceManifest.model_validate(data)
    except ValidationError as exc:
        raise ManifestValidationError(_format_validation_error(exc)) from exc


def parse_manifest(content: str) -> ServiceManifest:
    """Parse and validate raw vibe.json content."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ManifestValidationError(f"Invalid JSON: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise ManifestValidationError("Manifest must be a JSON object")

    return manifest_from_dict(data)


def manifest_to_dict(manifest: ServiceManifest) -> Dict[str, Any]:
    """JSON-ready dict with camelCase keys in declaration order."""
    return manifest.model_dump(mode="json", by_alias=True, exclude_none=True)


def serialize_manifest(manifest: ServiceManifest) -> str:
    """Render a manifest the way it is committed: 2-space indent, trailing newline."""
    return json.dumps(manifest_to_dict(manifest), indent=2, ensure_ascii=False) + "\n"


def service_fields_from_manifest(manifest: ServiceManifest) -> Dict[str, Any]:
    """Denormalized TrackedService fields for a manifest."""
    return {
        "service_name": manifest.service_name,
        "status": manifest.status.value,
        "current_task": manifest.current_task,
        "progress": manifest.progress,
        "last_update": manifest.last_update,
        "next_steps": list(manifest.next_steps),
        "dependencies": manifest.dependencies,
        "priority": manifest.priority.value if manifest.priority else None,
    }


def manifest_directory(path: str) -> str:
    """Directory holding a manifest ("" for a manifest at the repository root)."""
    return posixpath.dirname(path.strip("/"))
