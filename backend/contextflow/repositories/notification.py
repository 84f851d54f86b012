"""Repository for in-app notifications."""

from pymongo.database import Database

from contextflow.entities.notification import Notification

from .base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, db: Database):
        super().__init__(db, "notifications", Notification)
