"""Taskflow database layer."""

from taskflow.db.base import Base, Database
from taskflow.db.tables import (
    AutomationRuleTable,
    EventTable,
    JobTable,
    NotificationTable,
)

__all__ = [
    "AutomationRuleTable",
    "Base",
    "Database",
    "EventTable",
    "JobTable",
    "NotificationTable",
]
