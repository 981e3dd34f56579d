"""Event ingestion."""

from taskflow.events.activity import ActivityRecorder
from taskflow.events.bus import EventBus

__all__ = ["ActivityRecorder", "EventBus"]
