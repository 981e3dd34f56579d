"""Event, rule and notification stores."""

from taskflow.stores.base import EventStore, NotificationStore, RuleStore
from taskflow.stores.inmemory import (
    InMemoryEventStore,
    InMemoryNotificationStore,
    InMemoryRuleStore,
)
from taskflow.stores.sql import SqlEventStore, SqlNotificationStore, SqlRuleStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "InMemoryNotificationStore",
    "InMemoryRuleStore",
    "NotificationStore",
    "RuleStore",
    "SqlEventStore",
    "SqlNotificationStore",
    "SqlRuleStore",
]
