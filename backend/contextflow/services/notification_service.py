"""
Notification Service - In-app and Slack notifications.

Channels:
- In-app: Always sent when the repository has an owner, stored in MongoDB
- Slack: Optional incoming webhook (SLACK_WEBHOOK_URL)

Notification failures are logged and never interrupt the caller.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import PyMongoError

from contextflow.commits.interpreter import ParsedCommit, summarize_commit
from contextflow.config import settings
from contextflow.entities.commit_suggestion import CommitSuggestion
from contextflow.entities.notification import Notification, NotificationType
from contextflow.entities.repository import Repository
from contextflow.entities.tracked_service import TrackedService
from contextflow.repositories.notification import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationManager:
    """Sends notifications to the in-app inbox and, when configured, Slack."""

    def __init__(
        self,
        db: Optional[Database] = None,
        slack_webhook_url: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.db = db
        self.slack_webhook_url = slack_webhook_url or settings.SLACK_WEBHOOK_URL
        self._transport = transport

    # -------------------------------------------------------------------------
    # In-App Notifications (MongoDB)
    # -------------------------------------------------------------------------

    def create_in_app(
        self,
        user_id: ObjectId,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Optional[Notification]:
        """Create an in-app notification stored in MongoDB."""
        if self.db is None:
            logger.warning("Database not configured for in-app notifications")
            return None

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
            metadata=metadata,
        )
        try:
            return NotificationRepository(self.db).insert_one(notification)
        except PyMongoError as e:
            logger.error(f"Failed to store notification: {e}")
            return None

    # -------------------------------------------------------------------------
    # Slack Notifications
    # -------------------------------------------------------------------------

    def send_slack(self, blocks: List[Dict[str, Any]], text: str = "") -> bool:
        """Send a Slack message via Incoming Webhook."""
        if not self.slack_webhook_url:
            logger.debug("Slack webhook not configured")
            return False

        try:
            with httpx.Client(timeout=10.0, transport=self._transport) as client:
                response = client.post(
                    self.slack_webhook_url,
                    json={"blocks": blocks, "text": text},
                )
        except httpx.HTTPError as e:
            logger.error(f"Slack error: {e}")
            return False

        if response.status_code != 200:
            logger.warning(f"Slack failed: {response.status_code}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Domain events
    # -------------------------------------------------------------------------

    def notify_suggestion_created(
        self,
        repository: Repository,
        service: TrackedService,
        suggestion: CommitSuggestion,
        parsed: ParsedCommit,
    ) -> None:
        summary = summarize_commit(parsed)
        title = f"New update suggested for {service.service_name}"
        message = f"Commit {suggestion.commit_sha[:7]}: {summary}"
        link = f"{settings.FRONTEND_BASE_URL}/dashboard?repo={repository.id}&suggestion={suggestion.id}"

        if repository.user_id is not None:
            self.create_in_app(
                user_id=repository.user_id,
                type=NotificationType.SUGGESTION_CREATED,
                title=title,
                message=message,
                link=link,
                metadata={
                    "repository_id": str(repository.id),
                    "tracked_service_id": str(service.id),
                    "suggestion_id": str(suggestion.id),
                    "commit_sha": suggestion.commit_sha,
                },
            )

        self.send_slack(
            blocks=[
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*{title}*\n{repository.full_name} `{service.manifest_path}`\n{message}",
                    },
                }
            ],
            text=title,
        )

    def notify_suggestion_applied(
        self,
        repository: Repository,
        service: TrackedService,
        suggestion: CommitSuggestion,
    ) -> None:
        if repository.user_id is None:
            return
        self.create_in_app(
            user_id=repository.user_id,
            type=NotificationType.SUGGESTION_APPLIED,
            title=f"{service.service_name} manifest updated",
            message=f"Suggestion from commit {suggestion.commit_sha[:7]} was applied",
            metadata={
                "repository_id": str(repository.id),
                "tracked_service_id": str(service.id),
                "suggestion_id": str(suggestion.id),
            },
        )

    def notify_scan_completed(self, repository: Repository, found: int, errors: int) -> None:
        if repository.user_id is None:
            return
        self.create_in_app(
            user_id=repository.user_id,
            type=NotificationType.SCAN_COMPLETED,
            title=f"Scan of {repository.full_name} finished",
            message=f"{found} manifest(s) found, {errors} error(s)",
            metadata={"repository_id": str(repository.id)},
        )
