from __future__ import annotations

"""
MongoDB connection helpers.
"""

import logging
from typing import Generator

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

logger = logging.getLogger(__name__)

_client: MongoClient | None = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        # Import settings lazily to ensure env vars are loaded
        from contextflow.config import settings

        logger.info("Initializing MongoClient for database %s", settings.MONGODB_DB_NAME)
        _client = MongoClient(settings.MONGODB_URI, tz_aware=True)
    return _client


def get_database() -> Database:
    from contextflow.config import settings

    client = get_client()
    return client[settings.MONGODB_DB_NAME]


def get_db() -> Generator[Database, None, None]:
    db = get_database()
    try:
        yield db
    finally:
        # PyMongo manages connection pooling automatically; nothing to close here.
        pass


def ensure_indexes(db: Database) -> None:
    """
    Create the indexes the sync pipeline relies on.

    - repositories: one record per remote repository id
    - tracked_services: manifest path unique within a repository
    - commit_suggestions: at most one unapplied suggestion per (service, commit)
    """
    db.repositories.create_index([("github_repo_id", ASCENDING)], unique=True)
    db.repositories.create_index([("user_id", ASCENDING), ("is_active", ASCENDING)])

    db.tracked_services.create_index(
        [("repository_id", ASCENDING), ("manifest_path", ASCENDING)], unique=True
    )

    db.commit_suggestions.create_index(
        [("tracked_service_id", ASCENDING), ("commit_sha", ASCENDING)],
        unique=True,
        partialFilterExpression={"applied": False},
        name="unapplied_service_commit_unique",
    )
    db.commit_suggestions.create_index(
        [("repository_id", ASCENDING), ("applied", ASCENDING), ("created_at", DESCENDING)]
    )

    db.notifications.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    logger.info("MongoDB indexes ensured")
