"""Persistence interfaces consumed by the automation pipeline."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from taskflow.models import AutomationRule, Event, Notification


class EventStore(ABC):
    """Append-only store of activity events."""

    @abstractmethod
    async def create(self, event: Event) -> Event:
        """Persist an event and return it as stored."""

    @abstractmethod
    async def find(
        self,
        user_id: Optional[str] = None,
        type: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> list[Event]:
        """Newest-first events matching the filter."""

    @abstractmethod
    async def count(self, type: Optional[str] = None) -> int:
        """Number of stored events, optionally of one type."""

    @abstractmethod
    async def daily_active_users(self, days: int = 30) -> list[dict[str, Any]]:
        """``[{"date": "YYYY-MM-DD", "count": n}, ...]`` ascending by date."""


class RuleStore(ABC):
    """Automation rules, scoped by owner."""

    @abstractmethod
    async def find_enabled(self, owner_id: str) -> list[AutomationRule]:
        """Enabled rules owned by ``owner_id``."""

    @abstractmethod
    async def create(self, rule: AutomationRule) -> AutomationRule:
        """Persist a new rule."""

    @abstractmethod
    async def list_for_owner(self, owner_id: str) -> list[AutomationRule]:
        """All rules of an owner, enabled or not."""

    @abstractmethod
    async def set_enabled(self, owner_id: str, rule_id: UUID, enabled: bool) -> AutomationRule:
        """Toggle a rule; raises ``RuleNotFound`` when the owner has no such rule."""

    @abstractmethod
    async def delete(self, owner_id: str, rule_id: UUID) -> None:
        """Delete a rule; raises ``RuleNotFound`` when the owner has no such rule."""


class NotificationStore(ABC):
    """In-app notifications."""

    @abstractmethod
    async def create(self, notification: Notification) -> Notification:
        """Persist a notification."""

    @abstractmethod
    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        """Newest-first notifications for a user."""
