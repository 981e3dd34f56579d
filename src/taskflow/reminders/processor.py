"""Fires due reminders."""

import logging

from taskflow.models import Job, ReminderJob
from taskflow.notifications.realtime import RealtimeSink, project_room
from taskflow.observability.metrics import metrics

logger = logging.getLogger(__name__)


class ReminderProcessor:
    """Processor for the ``reminders`` queue: broadcast a due notice to the project."""

    def __init__(self, realtime: RealtimeSink):
        self.realtime = realtime

    async def process(self, job: Job) -> dict:
        reminder = ReminderJob.model_validate(job.payload)
        logger.info(f"Processing reminder for task {reminder.task_id}")

        notice = {
            "type": "REMINDER",
            "message": reminder.message,
            "taskId": reminder.task_id,
            "projectId": reminder.project_id,
        }
        await self.realtime.publish(project_room(reminder.project_id), "reminder", notice)

        metrics.inc_counter("reminders.fired")
        logger.info(f"Reminder sent for task {reminder.task_id}")
        return notice
