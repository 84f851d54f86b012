"""Repository for CommitSuggestion entities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from contextflow.entities.commit_suggestion import CommitSuggestion
from contextflow.repositories.base import BaseRepository


class CommitSuggestionRepository(BaseRepository[CommitSuggestion]):
    """Repository for the commit_suggestions collection."""

    def __init__(self, db: Database):
        super().__init__(db, "commit_suggestions", CommitSuggestion)

    def find_unapplied(
        self, tracked_service_id: str | ObjectId, commit_sha: str
    ) -> Optional[CommitSuggestion]:
        return self.find_one(
            {
                "tracked_service_id": self._to_object_id(tracked_service_id),
                "commit_sha": commit_sha,
                "applied": False,
            }
        )

    def create_if_absent(self, suggestion: CommitSuggestion) -> Tuple[CommitSuggestion, bool]:
        """
        Insert a suggestion unless an unapplied one exists for the same
        (service, commit). Returns (suggestion, created).
        """
        query = {
            "tracked_service_id": suggestion.tracked_service_id,
            "commit_sha": suggestion.commit_sha,
            "applied": False,
        }
        document = suggestion.to_mongo()
        for key in query:
            document.pop(key, None)

        try:
            result = self.collection.update_one(
                query, {"$setOnInsert": document}, upsert=True
            )
        except DuplicateKeyError:
            # Concurrent delivery of the same push won the insert
            return self.find_one(query), False

        return self.find_one(query), result.upserted_id is not None

    def list_pending_for_repository(self, repository_id: str | ObjectId) -> List[CommitSuggestion]:
        return self.find_many(
            {"repository_id": self._to_object_id(repository_id), "applied": False},
            sort=[("created_at", -1)],
        )

    def list_for_service(
        self, tracked_service_id: str | ObjectId, include_applied: bool = False
    ) -> List[CommitSuggestion]:
        query = {"tracked_service_id": self._to_object_id(tracked_service_id)}
        if not include_applied:
            query["applied"] = False
        return self.find_many(query, sort=[("created_at", -1)])

    def mark_applied(
        self, suggestion_id: str | ObjectId, applied_commit_sha: Optional[str]
    ) -> Optional[CommitSuggestion]:
        return self.update_one(
            suggestion_id,
            {
                "applied": True,
                "applied_at": datetime.now(timezone.utc),
                "applied_commit_sha": applied_commit_sha,
            },
        )

    def delete_by_repository(self, repository_id: str | ObjectId) -> int:
        return self.delete_many({"repository_id": self._to_object_id(repository_id)})
