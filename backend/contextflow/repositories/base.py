"""Generic MongoDB repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, Sequence, Tuple, Type, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.database import Database

from contextflow.entities.base import BaseEntity

T = TypeVar("T", bound=BaseEntity)


class BaseRepository(Generic[T]):
    """CRUD helpers over a single collection, returning entity models."""

    def __init__(self, db: Database, collection_name: str, model: Type[T]):
        self.db = db
        self.collection = db[collection_name]
        self.model = model

    @staticmethod
    def _to_object_id(value: str | ObjectId | None) -> Optional[ObjectId]:
        if value is None or isinstance(value, ObjectId):
            return value
        try:
            return ObjectId(value)
        except (InvalidId, TypeError):
            return None

    def _to_model(self, doc: Optional[Dict[str, Any]]) -> Optional[T]:
        return self.model(**doc) if doc else None

    def find_by_id(self, entity_id: str | ObjectId) -> Optional[T]:
        oid = self._to_object_id(entity_id)
        if oid is None:
            return None
        return self.find_one({"_id": oid})

    def find_one(self, query: Dict[str, Any]) -> Optional[T]:
        return self._to_model(self.collection.find_one(query))

    def find_many(
        self,
        query: Dict[str, Any],
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        limit: int = 0,
    ) -> List[T]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(list(sort))
        if limit:
            cursor = cursor.limit(limit)
        return [self.model(**doc) for doc in cursor]

    def insert_one(self, entity: T, session: Optional[ClientSession] = None) -> T:
        result = self.collection.insert_one(entity.to_mongo(), session=session)
        entity.id = result.inserted_id
        return entity

    def update_one(
        self,
        entity_id: str | ObjectId,
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None,
    ) -> Optional[T]:
        payload = {**updates, "updated_at": datetime.now(timezone.utc)}
        doc = self.collection.find_one_and_update(
            {"_id": self._to_object_id(entity_id)},
            {"$set": payload},
            return_document=ReturnDocument.AFTER,
            session=session,
        )
        return self._to_model(doc)

    def delete_one(self, entity_id: str | ObjectId) -> bool:
        result = self.collection.delete_one({"_id": self._to_object_id(entity_id)})
        return result.deleted_count > 0

    def delete_many(
        self, query: Dict[str, Any], session: Optional[ClientSession] = None
    ) -> int:
        return self.collection.delete_many(query, session=session).deleted_count
