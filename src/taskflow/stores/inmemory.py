"""In-memory stores for development and tests."""

import asyncio
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from taskflow.errors import RuleNotFound
from taskflow.models import AutomationRule, Event, Notification
from taskflow.stores.base import EventStore, NotificationStore, RuleStore
from taskflow.utils.time import ensure_aware, utc_now


class InMemoryEventStore(EventStore):
    def __init__(self):
        self._events: list[Event] = []
        self._lock = asyncio.Lock()

    async def create(self, event: Event) -> Event:
        async with self._lock:
            self._events.append(event)
        return event

    async def find(
        self,
        user_id: Optional[str] = None,
        type: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> list[Event]:
        matches = [
            e for e in self._events
            if (user_id is None or e.user_id == user_id)
            and (type is None or e.type == type)
            and (since is None or e.created_at >= ensure_aware(since))
        ]
        matches.sort(key=lambda e: e.created_at, reverse=True)
        return matches[:limit]

    async def count(self, type: Optional[str] = None) -> int:
        return sum(1 for e in self._events if type is None or e.type == type)

    async def daily_active_users(self, days: int = 30) -> list[dict[str, Any]]:
        start = utc_now() - timedelta(days=days)
        users_by_day: dict[str, set[str]] = defaultdict(set)
        for e in self._events:
            if e.created_at >= start:
                users_by_day[e.created_at.date().isoformat()].add(e.user_id)
        return [
            {"date": day, "count": len(users)}
            for day, users in sorted(users_by_day.items())
        ]


class InMemoryRuleStore(RuleStore):
    def __init__(self, rules: Optional[list[AutomationRule]] = None):
        self._rules: dict[UUID, AutomationRule] = {r.id: r for r in (rules or [])}
        # Set to an exception instance to simulate an unavailable store.
        self.fail_with: Optional[Exception] = None

    async def find_enabled(self, owner_id: str) -> list[AutomationRule]:
        if self.fail_with:
            raise self.fail_with
        return [r for r in self._rules.values() if r.owner_id == owner_id and r.enabled]

    async def create(self, rule: AutomationRule) -> AutomationRule:
        self._rules[rule.id] = rule
        return rule

    async def list_for_owner(self, owner_id: str) -> list[AutomationRule]:
        rules = [r for r in self._rules.values() if r.owner_id == owner_id]
        return sorted(rules, key=lambda r: r.created_at)

    async def set_enabled(self, owner_id: str, rule_id: UUID, enabled: bool) -> AutomationRule:
        rule = self._rules.get(rule_id)
        if not rule or rule.owner_id != owner_id:
            raise RuleNotFound(str(rule_id))
        updated = rule.model_copy(update={"enabled": enabled})
        self._rules[rule_id] = updated
        return updated

    async def delete(self, owner_id: str, rule_id: UUID) -> None:
        rule = self._rules.get(rule_id)
        if not rule or rule.owner_id != owner_id:
            raise RuleNotFound(str(rule_id))
        del self._rules[rule_id]


class InMemoryNotificationStore(NotificationStore):
    def __init__(self):
        self.notifications: list[Notification] = []

    async def create(self, notification: Notification) -> Notification:
        self.notifications.append(notification)
        return notification

    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        matches = [
            n for n in self.notifications
            if n.user_id == user_id and not (unread_only and n.read)
        ]
        matches.sort(key=lambda n: n.created_at, reverse=True)
        return matches[:limit]
