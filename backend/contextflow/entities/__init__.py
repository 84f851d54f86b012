"""Database entity models - represents the actual structure stored in MongoDB"""

from .base import BaseEntity, PyObjectId, PyObjectIdStr
from .commit_suggestion import CommitAuthor, CommitSuggestion
from .enums import HealthStatus, Priority, ServiceStatus
from .notification import Notification, NotificationType
from .repository import Repository
from .tracked_service import TrackedService

__all__ = [
    # Base
    "BaseEntity",
    "PyObjectId",
    "PyObjectIdStr",
    # Enums
    "ServiceStatus",
    "Priority",
    "HealthStatus",
    # Sync pipeline
    "Repository",
    "TrackedService",
    "CommitSuggestion",
    "CommitAuthor",
    # Other
    "Notification",
    "NotificationType",
]
