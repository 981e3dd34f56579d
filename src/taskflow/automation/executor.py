"""Action executor: runs the actions of a matched rule.

Each action is attempted independently and produces an ``ActionResult``.
Business conditions (missing email, unknown action) are skips, not errors.
Infrastructure failures raised as ``RetryableError`` are remembered and,
once every action has been attempted, re-raised as ``ActionJobIncomplete``
so the work queue retries the job. Re-delivery repeats every action of the
job; duplicate mail on retry is accepted.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from pydantic import ValidationError

from taskflow.automation.conditions import MISSING, resolve_path
from taskflow.errors import ActionJobIncomplete, RetryableError
from taskflow.models import (
    AUTOMATION_EXECUTED,
    ActionJob,
    ActionName,
    ActionOutcome,
    Event,
    Job,
    NotificationSeverity,
)
from taskflow.observability.metrics import metrics
from taskflow.stores.base import EventStore

logger = logging.getLogger(__name__)


class MailSink(Protocol):
    async def send(self, to: str, subject: str, body: str) -> Any:
        ...


class NotificationSink(Protocol):
    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        severity: NotificationSeverity = NotificationSeverity.INFO,
    ) -> Any:
        ...


@dataclass
class ActionResult:
    action: str
    outcome: ActionOutcome
    detail: str = ""


@dataclass
class ActionJobReport:
    """Per-action results for one automation job."""

    rule_id: str
    results: list[ActionResult] = field(default_factory=list)

    def outcomes(self) -> dict[str, str]:
        return {r.action: r.outcome.value for r in self.results}

    def count(self, outcome: ActionOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    def summary(self) -> str:
        parts = [f"{r.action}={r.outcome.value}" for r in self.results]
        return ", ".join(parts) or "no actions"


ActionHandler = Callable[[ActionJob], Awaitable[ActionResult]]


def _lookup(data: dict[str, Any], path: str) -> Any:
    value = resolve_path(data, path)
    return None if value is MISSING else value


class ActionExecutor:
    """Processor for the ``automation`` queue."""

    def __init__(
        self,
        mail: MailSink,
        notifications: NotificationSink,
        event_store: Optional[EventStore] = None,
    ):
        self.mail = mail
        self.notifications = notifications
        self.event_store = event_store
        self._handlers: dict[str, ActionHandler] = {
            ActionName.EMAIL_ASSIGNEE.value: self._email_assignee,
            ActionName.EMAIL_OWNER.value: self._email_owner,
            ActionName.SEND_EMAIL.value: self._email_owner,
            ActionName.ARCHIVE_TASK.value: self._not_implemented,
            ActionName.CREATE_TASK.value: self._not_implemented,
        }

    def register(self, action: str, handler: ActionHandler) -> None:
        """Add or replace the handler for an action name."""
        self._handlers[action] = handler

    @property
    def actions(self) -> list[str]:
        return sorted(self._handlers)

    async def process(self, job: Job) -> ActionJobReport:
        try:
            action_job = ActionJob.model_validate(job.payload)
        except ValidationError as e:
            # Retrying cannot fix a malformed payload.
            logger.error(f"Discarding automation job {job.job_id} with invalid payload: {e}")
            metrics.inc_counter("automation.invalid_jobs")
            return ActionJobReport(rule_id="")

        logger.info(f"Executing actions for rule {action_job.rule_id} job {job.job_id}")
        return await self.execute(action_job)

    async def execute(self, job: ActionJob) -> ActionJobReport:
        report = ActionJobReport(rule_id=job.rule_id)
        retryable: list[str] = []

        for action in job.actions:
            handler = self._handlers.get(action)
            if handler is None:
                logger.warning(f"Unknown action {action!r} in rule {job.rule_id}, skipping")
                report.results.append(ActionResult(action, ActionOutcome.SKIPPED, "unknown action"))
                continue

            try:
                result = await handler(job)
                result.action = action
            except RetryableError as e:
                logger.error(f"Action {action} for rule {job.rule_id} failed, will retry: {e}")
                retryable.append(action)
                result = ActionResult(action, ActionOutcome.FAILED, str(e))
            except Exception as e:
                logger.error(f"Action {action} for rule {job.rule_id} failed: {e}", exc_info=True)
                result = ActionResult(action, ActionOutcome.FAILED, str(e))

            report.results.append(result)
            metrics.inc_counter(f"actions.{result.outcome.value}")

        logger.info(f"Rule {job.rule_id} actions: {report.summary()}")

        if retryable:
            raise ActionJobIncomplete(job.rule_id, retryable)

        await self._record_execution(job, report)
        return report

    async def _record_execution(self, job: ActionJob, report: ActionJobReport) -> None:
        if self.event_store is None:
            return
        # Written straight to the store: rules never see this event type.
        event = Event(
            user_id=job.user_id,
            type=AUTOMATION_EXECUTED,
            metadata={
                "rule_id": job.rule_id,
                "trigger_event": job.event_data.get("type"),
                "actions": report.outcomes(),
            },
        )
        try:
            await self.event_store.create(event)
        except Exception as e:
            logger.error(f"Failed to record execution of rule {job.rule_id}: {e}", exc_info=True)

    async def _email_assignee(self, job: ActionJob) -> ActionResult:
        action = ActionName.EMAIL_ASSIGNEE.value
        data = job.event_data
        email = _lookup(data, "task.assignee.email")
        if not email:
            logger.warning(f"Rule {job.rule_id}: task has no assignee email, skipping {action}")
            return ActionResult(action, ActionOutcome.SKIPPED, "no assignee email")

        title = _lookup(data, "task.title") or "a task"
        await self.mail.send(
            email,
            f"Task update: {title}",
            f'An automation rule ran for "{title}" after {data.get("type", "an event")}.',
        )

        assignee_id = _lookup(data, "task.assignee.id") or _lookup(data, "task.assignee_id")
        if not assignee_id:
            logger.warning(f"Rule {job.rule_id}: assignee has no id, notification skipped")
            return ActionResult(action, ActionOutcome.SUCCEEDED, "mail only")

        await self.notifications.create(
            str(assignee_id),
            "Automation",
            f'An automation rule ran for "{title}".',
            NotificationSeverity.INFO,
        )
        return ActionResult(action, ActionOutcome.SUCCEEDED)

    async def _email_owner(self, job: ActionJob) -> ActionResult:
        action = ActionName.EMAIL_OWNER.value
        data = job.event_data
        email = _lookup(data, "user.email")
        if not email:
            logger.warning(
                f"Cannot send email, no email found in event data for user {job.user_id}"
            )
            return ActionResult(action, ActionOutcome.SKIPPED, "no owner email")

        event_type = data.get("type", "event")
        await self.mail.send(
            email,
            f"Automation Alert: {event_type}",
            "Your automation rule triggered this email.\n"
            f"Event: {json.dumps(data.get('metadata') or {}, default=str)}",
        )
        await self.notifications.create(
            job.user_id,
            "Automation Alert",
            f"{event_type} triggered your automation rule.",
            NotificationSeverity.INFO,
        )
        return ActionResult(action, ActionOutcome.SUCCEEDED)

    async def _not_implemented(self, job: ActionJob) -> ActionResult:
        # No persistence mutation happens for these actions yet.
        logger.info(f"Rule {job.rule_id}: action not implemented, nothing done")
        return ActionResult(ActionName.ARCHIVE_TASK.value, ActionOutcome.NOT_IMPLEMENTED, "not implemented")
