"""Taskflow data models."""

from taskflow.models.enums import (
    AUTOMATION_EXECUTED,
    ActionName,
    ActionOutcome,
    ActivityAction,
    EntityType,
    JobStatus,
    NotificationSeverity,
    QueueName,
    event_type_for,
)
from taskflow.models.event import CORE_FIELDS, Event
from taskflow.models.job import ActionJob, Job, MailMessage, ReminderJob
from taskflow.models.notification import Notification
from taskflow.models.rule import AutomationRule, Condition
from taskflow.models.task import Assignee, TaskSnapshot

__all__ = [
    "AUTOMATION_EXECUTED",
    "ActionJob",
    "ActionName",
    "ActionOutcome",
    "ActivityAction",
    "Assignee",
    "AutomationRule",
    "CORE_FIELDS",
    "Condition",
    "EntityType",
    "Event",
    "Job",
    "JobStatus",
    "MailMessage",
    "Notification",
    "NotificationSeverity",
    "QueueName",
    "ReminderJob",
    "TaskSnapshot",
    "event_type_for",
]
