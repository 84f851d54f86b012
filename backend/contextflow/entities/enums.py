"""Shared enums used by entities, manifests and DTOs."""

from enum import Enum


class ServiceStatus(str, Enum):
    """Board column a service sits in, as written in its manifest."""

    BACKLOG = "Backlog"
    IN_PROGRESS = "In Progress"
    TESTING = "Testing"
    DONE = "Done"


class Priority(str, Enum):
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class HealthStatus(str, Enum):
    """Staleness bucket derived from the last commit touching a manifest."""

    HEALTHY = "Healthy"
    STALE = "Stale"
    INACTIVE = "Inactive"
    UNKNOWN = "Unknown"
