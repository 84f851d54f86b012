"""Repository for TrackedService entities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo.database import Database

from contextflow.entities.enums import HealthStatus
from contextflow.entities.tracked_service import TrackedService
from contextflow.manifest import ServiceManifest, service_fields_from_manifest
from contextflow.repositories.base import BaseRepository


class TrackedServiceRepository(BaseRepository[TrackedService]):
    """Repository for the tracked_services collection."""

    def __init__(self, db: Database):
        super().__init__(db, "tracked_services", TrackedService)

    def find_by_repository(self, repository_id: str | ObjectId) -> List[TrackedService]:
        return self.find_many(
            {"repository_id": self._to_object_id(repository_id)},
            sort=[("manifest_path", 1)],
        )

    def find_by_repositories(self, repository_ids: List[ObjectId]) -> List[TrackedService]:
        if not repository_ids:
            return []
        return self.find_many({"repository_id": {"$in": repository_ids}})

    def upsert_from_manifest(
        self,
        repository_id: str | ObjectId,
        manifest_path: str,
        manifest: ServiceManifest,
        extra: Optional[Dict[str, Any]] = None,
    ) -> Tuple[TrackedService, bool]:
        """
        Create or refresh the service for a manifest path.

        Returns:
            Tuple of (service, created)
        """
        query = {
            "repository_id": self._to_object_id(repository_id),
            "manifest_path": manifest_path,
        }
        fields = {**service_fields_from_manifest(manifest), **(extra or {})}
        now = datetime.now(timezone.utc)

        # Keys in $set must not repeat in $setOnInsert
        on_insert: Dict[str, Any] = {"created_at": now}
        if "health_status" not in fields:
            on_insert["health_status"] = HealthStatus.UNKNOWN.value

        result = self.collection.update_one(
            query,
            {"$set": {**fields, "updated_at": now}, "$setOnInsert": on_insert},
            upsert=True,
        )
        service = self.find_one(query)
        return service, result.upserted_id is not None

    def update_from_manifest(
        self, service_id: str | ObjectId, manifest: ServiceManifest
    ) -> Optional[TrackedService]:
        return self.update_one(service_id, service_fields_from_manifest(manifest))

    def update_health(
        self,
        service_id: str | ObjectId,
        health_status: HealthStatus,
        last_commit_date: Optional[datetime],
    ) -> Optional[TrackedService]:
        return self.update_one(
            service_id,
            {
                "health_status": health_status.value,
                "last_commit_date": last_commit_date,
                "last_health_check_at": datetime.now(timezone.utc),
            },
        )

    def delete_by_repository(self, repository_id: str | ObjectId) -> int:
        return self.delete_many({"repository_id": self._to_object_id(repository_id)})
