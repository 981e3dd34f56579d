"""Outbound mail: queueing side."""

import logging
from typing import Any, Optional

from taskflow.models import Job, MailMessage, QueueName
from taskflow.observability.metrics import metrics
from taskflow.queue.base import WorkQueue

logger = logging.getLogger(__name__)


class MailService:
    """Queues mail on the ``mail`` queue; ``MailProcessor`` delivers it.

    Queueing fails only when the work queue is unavailable, in which case
    ``QueueUnavailable`` propagates to the caller.
    """

    def __init__(self, queue: WorkQueue, max_attempts: Optional[int] = None):
        self.queue = queue
        self.max_attempts = max_attempts

    async def _enqueue(self, to: str, subject: str, template: str, context: dict[str, Any]) -> Job:
        message = MailMessage(to=to, subject=subject, template=template, context=context)
        job = await self.queue.enqueue(
            QueueName.MAIL.value,
            message.model_dump(mode="json"),
            name="send-email",
            max_attempts=self.max_attempts,
        )
        metrics.inc_counter("jobs.enqueued.mail")
        logger.debug(f"Queued {template} mail to {to}")
        return job

    async def send(self, to: str, subject: str, body: str) -> Job:
        return await self.send_generic(to, subject, body)

    async def send_generic(self, to: str, subject: str, body: str) -> Job:
        return await self._enqueue(to, subject, "generic", {"body": body})

    async def send_task_assigned(self, to: str, task_title: str, project_name: str) -> Job:
        return await self._enqueue(
            to,
            f"New Task Assigned: {task_title}",
            "task-assigned",
            {"taskTitle": task_title, "projectName": project_name},
        )

    async def send_reminder(self, to: str, task_title: str, project_name: str) -> Job:
        return await self._enqueue(
            to,
            f"Reminder: {task_title} is due soon!",
            "reminder",
            {"taskTitle": task_title, "projectName": project_name},
        )

    async def send_project_invitation(
        self, to: str, project_name: str, role: str, inviter_name: str
    ) -> Job:
        return await self._enqueue(
            to,
            f"You've been invited to join {project_name}",
            "project-invitation",
            {"projectName": project_name, "role": role, "inviterName": inviter_name},
        )

    async def send_welcome(self, to: str, name: str) -> Job:
        return await self._enqueue(to, "Welcome to To-Do!", "welcome", {"name": name})
