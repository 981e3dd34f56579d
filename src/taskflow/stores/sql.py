"""PostgreSQL-backed stores."""

from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import Date, cast, delete, distinct, func, select, update

from taskflow.db.base import Database
from taskflow.db.tables import AutomationRuleTable, EventTable, NotificationTable
from taskflow.errors import RuleNotFound
from taskflow.models import AutomationRule, Event, Notification
from taskflow.stores.base import EventStore, NotificationStore, RuleStore
from taskflow.utils.time import utc_now


class SqlEventStore(EventStore):
    """Events table access."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, event: Event) -> Event:
        payload = event.as_payload()
        row = EventTable(
            id=event.id,
            user_id=event.user_id,
            type=event.type,
            metadata_=payload["metadata"],
            related={key: payload[key] for key in event.related},
            created_at=event.created_at,
        )
        async with self.db.session() as session:
            session.add(row)
            await session.flush()
        return event

    async def find(
        self,
        user_id: Optional[str] = None,
        type: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: int = 50,
    ) -> list[Event]:
        query = select(EventTable)
        if user_id:
            query = query.where(EventTable.user_id == user_id)
        if type:
            query = query.where(EventTable.type == type)
        if since:
            query = query.where(EventTable.created_at >= since)
        query = query.order_by(EventTable.created_at.desc()).limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return [self._row_to_model(r) for r in result.scalars().all()]

    async def count(self, type: Optional[str] = None) -> int:
        query = select(func.count()).select_from(EventTable)
        if type:
            query = query.where(EventTable.type == type)
        async with self.db.session() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    async def daily_active_users(self, days: int = 30) -> list[dict[str, Any]]:
        start = utc_now() - timedelta(days=days)
        day = cast(EventTable.created_at, Date)
        query = (
            select(day.label("day"), func.count(distinct(EventTable.user_id)))
            .where(EventTable.created_at >= start)
            .group_by(day)
            .order_by(day)
        )
        async with self.db.session() as session:
            result = await session.execute(query)
            return [{"date": d.isoformat(), "count": int(n)} for d, n in result.all()]

    def _row_to_model(self, row: EventTable) -> Event:
        """Convert database row to model."""
        return Event(
            **(row.related or {}),
            id=row.id,
            user_id=row.user_id,
            type=row.type,
            metadata=row.metadata_ or {},
            created_at=row.created_at,
        )


class SqlRuleStore(RuleStore):
    """Automation rules table access."""

    def __init__(self, db: Database):
        self.db = db

    async def find_enabled(self, owner_id: str) -> list[AutomationRule]:
        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationRuleTable).where(
                    AutomationRuleTable.owner_id == owner_id,
                    AutomationRuleTable.enabled.is_(True),
                )
            )
            return [self._row_to_model(r) for r in result.scalars().all()]

    async def create(self, rule: AutomationRule) -> AutomationRule:
        row = AutomationRuleTable(
            id=rule.id,
            owner_id=rule.owner_id,
            trigger=rule.trigger,
            conditions=rule.conditions_payload(),
            actions=list(rule.actions),
            enabled=rule.enabled,
            created_at=rule.created_at,
        )
        async with self.db.session() as session:
            session.add(row)
            await session.flush()
        return rule

    async def list_for_owner(self, owner_id: str) -> list[AutomationRule]:
        async with self.db.session() as session:
            result = await session.execute(
                select(AutomationRuleTable)
                .where(AutomationRuleTable.owner_id == owner_id)
                .order_by(AutomationRuleTable.created_at.asc())
            )
            return [self._row_to_model(r) for r in result.scalars().all()]

    async def set_enabled(self, owner_id: str, rule_id: UUID, enabled: bool) -> AutomationRule:
        async with self.db.session() as session:
            result = await session.execute(
                update(AutomationRuleTable)
                .where(
                    AutomationRuleTable.id == rule_id,
                    AutomationRuleTable.owner_id == owner_id,
                )
                .values(enabled=enabled)
                .returning(AutomationRuleTable)
            )
            row = result.scalar_one_or_none()
            if row is None:
                raise RuleNotFound(str(rule_id))
            return self._row_to_model(row)

    async def delete(self, owner_id: str, rule_id: UUID) -> None:
        async with self.db.session() as session:
            result = await session.execute(
                delete(AutomationRuleTable).where(
                    AutomationRuleTable.id == rule_id,
                    AutomationRuleTable.owner_id == owner_id,
                )
            )
            if result.rowcount == 0:
                raise RuleNotFound(str(rule_id))

    def _row_to_model(self, row: AutomationRuleTable) -> AutomationRule:
        """Convert database row to model."""
        return AutomationRule(
            id=row.id,
            owner_id=row.owner_id,
            trigger=row.trigger,
            conditions=row.conditions,
            actions=row.actions or [],
            enabled=row.enabled,
            created_at=row.created_at,
        )


class SqlNotificationStore(NotificationStore):
    """Notifications table access."""

    def __init__(self, db: Database):
        self.db = db

    async def create(self, notification: Notification) -> Notification:
        row = NotificationTable(
            id=notification.id,
            user_id=notification.user_id,
            title=notification.title,
            message=notification.message,
            severity=notification.severity,
            read=notification.read,
            created_at=notification.created_at,
        )
        async with self.db.session() as session:
            session.add(row)
            await session.flush()
        return notification

    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = select(NotificationTable).where(NotificationTable.user_id == user_id)
        if unread_only:
            query = query.where(NotificationTable.read.is_(False))
        query = query.order_by(NotificationTable.created_at.desc()).limit(limit)

        async with self.db.session() as session:
            result = await session.execute(query)
            return [
                Notification(
                    id=r.id,
                    user_id=r.user_id,
                    title=r.title,
                    message=r.message,
                    severity=r.severity,
                    read=r.read,
                    created_at=r.created_at,
                )
                for r in result.scalars().all()
            ]
