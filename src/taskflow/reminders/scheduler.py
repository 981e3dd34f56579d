"""Due-date reminders on the ``reminders`` queue."""

import logging
from datetime import datetime
from typing import Optional

from taskflow.models import Job, QueueName, ReminderJob
from taskflow.observability.metrics import metrics
from taskflow.queue.base import WorkQueue
from taskflow.utils.time import ensure_aware, seconds_until

logger = logging.getLogger(__name__)


def reminder_job_key(task_id: str) -> str:
    """Job identity shared by every reminder of one task."""
    return f"reminder-{task_id}"


class ReminderScheduler:
    """Keeps at most one pending reminder per task.

    Scheduling again replaces the pending reminder through the queue's
    replace-by-key semantics; there is no application-level lock.
    """

    def __init__(self, queue: WorkQueue):
        self.queue = queue

    async def schedule_reminder(
        self,
        task_id: str,
        project_id: str,
        user_id: str,
        due_at: datetime,
        now: Optional[datetime] = None,
    ) -> Optional[Job]:
        """Schedule the reminder to fire at ``due_at``; past due dates are ignored."""
        delay = seconds_until(due_at, now)
        if delay <= 0:
            logger.debug(f"Task {task_id} is already due, no reminder scheduled")
            return None

        payload = ReminderJob(
            task_id=task_id,
            project_id=project_id,
            user_id=user_id,
            due_at=ensure_aware(due_at),
        )
        job = await self.queue.enqueue(
            QueueName.REMINDERS.value,
            payload.model_dump(mode="json"),
            name="send-reminder",
            delay=delay,
            job_key=reminder_job_key(task_id),
            remove_on_complete=True,
        )
        metrics.inc_counter("reminders.scheduled")
        logger.info(f"Scheduled reminder for task {task_id} in {round(delay)}s")
        return job

    async def cancel_reminder(self, task_id: str) -> bool:
        """Remove the task's pending reminder. ``False`` if there was none."""
        removed = await self.queue.remove(QueueName.REMINDERS.value, reminder_job_key(task_id))
        if removed:
            metrics.inc_counter("reminders.cancelled")
            logger.info(f"Cancelled reminder for task {task_id}")
        return removed

    async def get_pending(self, task_id: str) -> Optional[Job]:
        return await self.queue.get_pending(QueueName.REMINDERS.value, reminder_job_key(task_id))
