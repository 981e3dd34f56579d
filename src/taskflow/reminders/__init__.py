"""Task due-date reminders."""

from taskflow.reminders.processor import ReminderProcessor
from taskflow.reminders.scheduler import ReminderScheduler, reminder_job_key

__all__ = ["ReminderProcessor", "ReminderScheduler", "reminder_job_key"]
