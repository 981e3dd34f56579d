"""Task lifecycle hooks and background maintenance."""

from taskflow.tasks.lifecycle import TaskLifecycle
from taskflow.tasks.sweep import LeaseSweeper

__all__ = ["LeaseSweeper", "TaskLifecycle"]
