"""
Action executor tests.

Actions run independently; skips are not failures, and retryable
failures surface after every action has been attempted.
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from taskflow.automation.executor import ActionExecutor, ActionResult
from taskflow.errors import ActionJobIncomplete, MailDeliveryError
from taskflow.models import (
    AUTOMATION_EXECUTED,
    ActionJob,
    ActionOutcome,
    Job,
    JobStatus,
    QueueName,
)


def action_job(actions, task=None, user=None, event_type="TASK_UPDATED"):
    event_data = {"type": event_type, "user_id": "owner-1", "metadata": {"priority": "HIGH"}}
    if task is not None:
        event_data["task"] = task
    if user is not None:
        event_data["user"] = user
    return ActionJob(rule_id="rule-1", user_id="owner-1", actions=actions, event_data=event_data)


def as_queue_job(payload):
    now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    return Job(
        job_id=uuid4(),
        queue=QueueName.AUTOMATION.value,
        payload=payload,
        status=JobStatus.LEASED,
        run_at=now,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def executor(mail_sink, notification_sink, event_store):
    return ActionExecutor(mail_sink, notification_sink, event_store=event_store)


@pytest.mark.asyncio
async def test_email_assignee_without_assignee_is_skipped(executor, mail_sink, notification_sink):
    """Missing data is a skip, not a failure."""
    job = action_job(["EMAIL_ASSIGNEE"], task={"id": "t1", "title": "Ship it"})

    report = await executor.execute(job)

    assert report.outcomes() == {"EMAIL_ASSIGNEE": "skipped"}
    assert mail_sink.sent == []
    assert notification_sink.created == []


@pytest.mark.asyncio
async def test_email_assignee_sends_mail_and_notifies(executor, mail_sink, notification_sink):
    task = {
        "id": "t1",
        "title": "Ship it",
        "assignee": {"id": "u2", "email": "bob@example.com"},
    }

    report = await executor.execute(action_job(["EMAIL_ASSIGNEE"], task=task))

    assert report.outcomes() == {"EMAIL_ASSIGNEE": "succeeded"}
    assert len(mail_sink.sent) == 1
    to, subject, _ = mail_sink.sent[0]
    assert to == "bob@example.com"
    assert subject == "Task update: Ship it"
    assert notification_sink.created[0]["user_id"] == "u2"


@pytest.mark.asyncio
async def test_email_owner_uses_event_user(executor, mail_sink, notification_sink):
    job = action_job(["EMAIL_OWNER"], user={"id": "owner-1", "email": "alice@example.com"})

    report = await executor.execute(job)

    assert report.count(ActionOutcome.SUCCEEDED) == 1
    to, subject, body = mail_sink.sent[0]
    assert to == "alice@example.com"
    assert subject == "Automation Alert: TASK_UPDATED"
    assert body.startswith("Your automation rule triggered this email.")
    assert '"priority": "HIGH"' in body
    assert notification_sink.created[0]["user_id"] == "owner-1"
    assert notification_sink.created[0]["title"] == "Automation Alert"


@pytest.mark.asyncio
async def test_email_owner_without_email_is_skipped(executor, mail_sink):
    report = await executor.execute(action_job(["EMAIL_OWNER"], user={"id": "owner-1"}))

    assert report.outcomes() == {"EMAIL_OWNER": "skipped"}
    assert mail_sink.sent == []


@pytest.mark.asyncio
async def test_send_email_behaves_like_email_owner(executor, mail_sink):
    job = action_job(["SEND_EMAIL"], user={"email": "alice@example.com"})

    report = await executor.execute(job)

    assert report.outcomes() == {"SEND_EMAIL": "succeeded"}
    assert mail_sink.sent[0][0] == "alice@example.com"


@pytest.mark.asyncio
async def test_archive_and_create_task_are_not_implemented(executor, mail_sink):
    report = await executor.execute(action_job(["ARCHIVE_TASK", "CREATE_TASK"]))

    assert report.outcomes() == {
        "ARCHIVE_TASK": "not_implemented",
        "CREATE_TASK": "not_implemented",
    }
    assert mail_sink.sent == []


@pytest.mark.asyncio
async def test_unknown_action_is_skipped(executor):
    report = await executor.execute(action_job(["SMS_EVERYONE"]))

    assert report.outcomes() == {"SMS_EVERYONE": "skipped"}


@pytest.mark.asyncio
async def test_failing_action_does_not_stop_later_actions(executor, mail_sink):
    async def explode(job):
        raise ValueError("boom")

    executor.register("EXPLODE", explode)
    job = action_job(["EXPLODE", "EMAIL_OWNER"], user={"email": "alice@example.com"})

    report = await executor.execute(job)

    assert report.outcomes() == {"EXPLODE": "failed", "EMAIL_OWNER": "succeeded"}
    assert len(mail_sink.sent) == 1


@pytest.mark.asyncio
async def test_retryable_failure_raises_after_all_actions(executor, notification_sink, event_store):
    """Every action runs before the job is handed back for retry."""
    async def mail_down(job):
        raise MailDeliveryError("alice@example.com", "503 from relay")

    async def note(job):
        await notification_sink.create("owner-1", "Noted", "ran")
        return ActionResult("NOTE", ActionOutcome.SUCCEEDED)

    executor.register("MAIL_DOWN", mail_down)
    executor.register("NOTE", note)

    with pytest.raises(ActionJobIncomplete) as exc_info:
        await executor.execute(action_job(["MAIL_DOWN", "NOTE"]))

    assert exc_info.value.failed_actions == ["MAIL_DOWN"]
    assert len(notification_sink.created) == 1
    assert await event_store.count(AUTOMATION_EXECUTED) == 0


@pytest.mark.asyncio
async def test_successful_job_records_one_execution_event(executor, event_store):
    job = action_job(["EMAIL_OWNER", "ARCHIVE_TASK"], user={"email": "alice@example.com"})

    await executor.execute(job)

    events = await event_store.find(type=AUTOMATION_EXECUTED)
    assert len(events) == 1
    assert events[0].user_id == "owner-1"
    assert events[0].metadata["rule_id"] == "rule-1"
    assert events[0].metadata["trigger_event"] == "TASK_UPDATED"
    assert events[0].metadata["actions"] == {
        "EMAIL_OWNER": "succeeded",
        "ARCHIVE_TASK": "not_implemented",
    }


@pytest.mark.asyncio
async def test_process_accepts_queue_job(executor, mail_sink):
    job = action_job(["EMAIL_OWNER"], user={"email": "alice@example.com"})

    report = await executor.process(as_queue_job(job.model_dump(mode="json")))

    assert report.rule_id == "rule-1"
    assert len(mail_sink.sent) == 1


@pytest.mark.asyncio
async def test_process_discards_invalid_payload(executor, mail_sink):
    report = await executor.process(as_queue_job({"actions": "not-a-list"}))

    assert report.results == []
    assert mail_sink.sent == []
