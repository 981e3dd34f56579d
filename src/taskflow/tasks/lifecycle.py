"""Hooks the task service calls after creating, updating or deleting a task."""

import logging
from typing import Any, Awaitable, Optional

from taskflow.cache.invalidation import CacheInvalidator
from taskflow.events.activity import ActivityRecorder
from taskflow.mail.service import MailService
from taskflow.models import TaskSnapshot
from taskflow.notifications.realtime import RealtimeSink, project_room
from taskflow.reminders.scheduler import ReminderScheduler
from taskflow.utils.time import seconds_until

logger = logging.getLogger(__name__)


class TaskLifecycle:
    """
    Automation side effects of task mutations.

    Runs after the task row is committed: records activity events, keeps the
    task's reminder in step with its due date and status, queues the
    task-assigned mail, pushes realtime updates and invalidates cached task
    lists. Each step is independent and best-effort; a failing step is
    logged and never raised into the task service.
    """

    def __init__(
        self,
        activity: ActivityRecorder,
        reminders: ReminderScheduler,
        mail: MailService,
        invalidator: CacheInvalidator,
        realtime: Optional[RealtimeSink] = None,
    ):
        self.activity = activity
        self.reminders = reminders
        self.mail = mail
        self.invalidator = invalidator
        self.realtime = realtime

    async def _step(self, name: str, task_id: str, awaitable: Awaitable[Any]) -> bool:
        try:
            await awaitable
            return True
        except Exception as e:
            logger.error(f"Task {task_id}: {name} failed: {e}", exc_info=True)
            return False

    async def _publish(self, project_id: str, event_name: str, payload: dict[str, Any]) -> None:
        if self.realtime is not None:
            await self.realtime.publish(project_room(project_id), event_name, payload)

    def _related(self, task: TaskSnapshot, actor: Optional[dict[str, Any]]) -> dict[str, Any]:
        related: dict[str, Any] = {"task": task.as_event_entity()}
        if actor:
            related["user"] = actor
        return related

    async def _send_assigned_mail(self, task: TaskSnapshot) -> None:
        if task.assignee and task.assignee.email:
            await self.mail.send_task_assigned(
                task.assignee.email, task.title, task.project_name or ""
            )

    async def on_created(
        self, actor_id: str, task: TaskSnapshot, actor: Optional[dict[str, Any]] = None
    ) -> None:
        related = self._related(task, actor)
        await self._step(
            "activity", task.id, self.activity.task_created(actor_id, task.id, task.title, **related)
        )
        await self._step("realtime", task.id, self._publish(task.project_id, "task_created", related["task"]))

        if task.due_at and not task.is_done():
            await self._step(
                "reminder",
                task.id,
                self.reminders.schedule_reminder(task.id, task.project_id, actor_id, task.due_at),
            )

        await self._step("mail", task.id, self._send_assigned_mail(task))
        await self._step(
            "cache", task.id, self.invalidator.invalidate_for_mutation(actor_id, task.assignee_id)
        )

    async def on_updated(
        self,
        actor_id: str,
        before: TaskSnapshot,
        after: TaskSnapshot,
        changes: Optional[dict[str, Any]] = None,
        actor: Optional[dict[str, Any]] = None,
    ) -> None:
        related = self._related(after, actor)
        changes = changes if changes is not None else {}

        await self._step("reminder", after.id, self._sync_reminder(actor_id, before, after))

        assignee_changed = bool(after.assignee_id) and after.assignee_id != before.assignee_id
        if assignee_changed:
            await self._step("mail", after.id, self._send_assigned_mail(after))

        if after.status != before.status:
            await self._step(
                "activity",
                after.id,
                self.activity.task_status_changed(actor_id, after.id, before.status, after.status, **related),
            )
            if after.is_done() and not before.is_done():
                await self._step(
                    "activity",
                    after.id,
                    self.activity.task_completed(actor_id, after.id, after.title, **related),
                )
        if assignee_changed:
            await self._step(
                "activity",
                after.id,
                self.activity.task_assigned(actor_id, after.id, after.assignee_id, **related),
            )
        await self._step(
            "activity", after.id, self.activity.task_updated(actor_id, after.id, changes, **related)
        )

        await self._step("realtime", after.id, self._publish(after.project_id, "task_updated", related["task"]))
        await self._step(
            "cache",
            after.id,
            self.invalidator.invalidate_for_mutation(actor_id, after.assignee_id, before.assignee_id),
        )

    async def _sync_reminder(self, actor_id: str, before: TaskSnapshot, after: TaskSnapshot) -> None:
        """Cancel on completion or due-date removal, reschedule on a new due date."""
        if after.is_done() or after.due_at is None:
            if before.due_at is not None and not before.is_done():
                await self.reminders.cancel_reminder(after.id)
            return

        if after.due_at == before.due_at and not before.is_done():
            return

        if seconds_until(after.due_at) <= 0:
            await self.reminders.cancel_reminder(after.id)
            return
        await self.reminders.schedule_reminder(after.id, after.project_id, actor_id, after.due_at)

    async def on_deleted(
        self, actor_id: str, task: TaskSnapshot, actor: Optional[dict[str, Any]] = None
    ) -> None:
        related = self._related(task, actor)
        await self._step("reminder", task.id, self.reminders.cancel_reminder(task.id))
        await self._step(
            "activity", task.id, self.activity.task_deleted(actor_id, task.id, task.title, **related)
        )
        await self._step(
            "realtime",
            task.id,
            self._publish(task.project_id, "task_deleted", {"id": task.id, "projectId": task.project_id}),
        )
        await self._step(
            "cache", task.id, self.invalidator.invalidate_for_mutation(actor_id, task.assignee_id)
        )
