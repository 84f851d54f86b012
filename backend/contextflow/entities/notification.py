"""Notification entity for in-app notifications."""

from enum import Enum
from typing import Optional

from pydantic import Field

from contextflow.entities.base import BaseEntity, PyObjectId


class NotificationType(str, Enum):
    """Types of notifications."""

    SUGGESTION_CREATED = "suggestion_created"
    SUGGESTION_APPLIED = "suggestion_applied"
    SCAN_COMPLETED = "scan_completed"


class Notification(BaseEntity):
    """In-app notification for users."""

    user_id: PyObjectId = Field(..., description="User who receives this notification")
    type: NotificationType = Field(..., description="Type of notification")
    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification message body")
    is_read: bool = Field(
        default=False, description="Whether notification has been read"
    )
    link: Optional[str] = Field(default=None, description="URL to navigate on click")
    metadata: Optional[dict] = Field(default=None, description="Extra context data")
