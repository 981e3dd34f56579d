"""In-app notifications."""

import logging
from typing import Optional

from taskflow.models import Notification, NotificationSeverity
from taskflow.notifications.realtime import RealtimeSink, user_room
from taskflow.stores.base import NotificationStore

logger = logging.getLogger(__name__)


class NotificationService:
    """Persists notifications and pushes them to the recipient's room."""

    def __init__(self, store: NotificationStore, realtime: Optional[RealtimeSink] = None):
        self.store = store
        self.realtime = realtime

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> Notification:
        notification = await self.store.create(
            Notification(user_id=user_id, title=title, message=message, severity=severity)
        )

        if self.realtime is not None:
            try:
                await self.realtime.publish(
                    user_room(user_id),
                    "notification_created",
                    notification.model_dump(mode="json"),
                )
            except Exception as e:
                # Stored already; the client picks it up on its next fetch.
                logger.warning(f"Realtime push failed for notification {notification.id}: {e}")

        return notification

    async def list_for_user(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        return await self.store.list_for_user(user_id, unread_only=unread_only, limit=limit)
