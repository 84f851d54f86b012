"""Repository layer for database operations"""

from .base import BaseRepository
from .commit_suggestion import CommitSuggestionRepository
from .notification import NotificationRepository
from .repository import RepositoryRepository
from .tracked_service import TrackedServiceRepository

__all__ = [
    "BaseRepository",
    "RepositoryRepository",
    "TrackedServiceRepository",
    "CommitSuggestionRepository",
    "NotificationRepository",
]
