"""Notifications and realtime fan-out."""

from taskflow.notifications.realtime import (
    InMemoryRealtimeSink,
    RealtimeSink,
    RedisRealtimeSink,
    project_room,
    user_room,
)
from taskflow.notifications.service import NotificationService

__all__ = [
    "InMemoryRealtimeSink",
    "NotificationService",
    "RealtimeSink",
    "RedisRealtimeSink",
    "project_room",
    "user_room",
]
