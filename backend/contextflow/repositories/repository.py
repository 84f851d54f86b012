"""Repository for connected GitHub repositories (yes, repo of repos!)"""

from datetime import datetime, timezone
from typing import List, Optional

from pymongo.database import Database

from contextflow.entities.repository import Repository

from .base import BaseRepository


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for the repositories collection."""

    def __init__(self, db: Database):
        super().__init__(db, "repositories", Repository)

    def find_by_github_id(self, github_repo_id: int) -> Optional[Repository]:
        """Find a repository by GitHub's stable repository id."""
        return self.find_one({"github_repo_id": github_repo_id})

    def find_active_by_github_id(self, github_repo_id: int) -> Optional[Repository]:
        return self.find_one({"github_repo_id": github_repo_id, "is_active": True})

    def list_by_user(self, user_id: Optional[str] = None) -> List[Repository]:
        """List active repositories for a user, or all active ones."""
        query = {"is_active": True}
        if user_id is not None:
            query["user_id"] = self._to_object_id(user_id)
        return self.find_many(query, sort=[("created_at", -1)])

    def list_active(self) -> List[Repository]:
        return self.find_many({"is_active": True})

    def upsert_connected(
        self,
        *,
        user_id: Optional[str],
        owner: str,
        name: str,
        full_name: str,
        github_repo_id: int,
        default_branch: str,
    ) -> Repository:
        """Insert or reactivate a repository, keeping any webhook settings."""
        now = datetime.now(timezone.utc)
        existing = self.find_by_github_id(github_repo_id)

        document = {
            "user_id": self._to_object_id(user_id) if user_id else None,
            "owner": owner,
            "name": name,
            "full_name": full_name,
            "github_repo_id": github_repo_id,
            "default_branch": default_branch,
            "is_active": True,
            "connected_at": now,
            "disconnected_at": None,
        }

        if existing:
            return self.update_one(existing.id, document)

        return self.insert_one(Repository(**document))

    def set_webhook(
        self, repository_id: str, webhook_id: Optional[int], webhook_secret: Optional[str]
    ) -> Optional[Repository]:
        return self.update_one(
            repository_id, {"webhook_id": webhook_id, "webhook_secret": webhook_secret}
        )

    def deactivate(self, repository_id: str) -> Optional[Repository]:
        """Mark a repository disconnected. The record itself is kept."""
        return self.update_one(
            repository_id,
            {
                "is_active": False,
                "disconnected_at": datetime.now(timezone.utc),
                "webhook_id": None,
                "webhook_secret": None,
            },
        )

    def mark_scanned(self, repository_id: str) -> Optional[Repository]:
        return self.update_one(
            repository_id, {"last_scanned_at": datetime.now(timezone.utc)}
        )
