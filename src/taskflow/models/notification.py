"""In-app notification model."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from taskflow.models.enums import NotificationSeverity
from taskflow.utils.time import utc_now


class Notification(BaseModel):
    """Notification addressed to a single user."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    title: str
    message: str
    severity: NotificationSeverity = NotificationSeverity.INFO
    read: bool = False
    created_at: datetime = Field(default_factory=utc_now)
