"""
Side effects of task mutations: activity events, reminders, mail, realtime
pushes and cache invalidation.
"""

from datetime import timedelta

import pytest

from taskflow.cache import task_list_cache_key
from taskflow.models import Assignee, MailMessage, QueueName, TaskSnapshot
from taskflow.notifications.realtime import project_room
from taskflow.reminders import reminder_job_key
from taskflow.utils.time import utc_now


def make_task(**overrides):
    values = dict(id="t1", project_id="p1", title="Ship it", project_name="Launch")
    values.update(overrides)
    return TaskSnapshot(**values)


def bob():
    return Assignee(id="u2", name="Bob", email="bob@example.com")


async def event_types(services):
    return sorted(e.type for e in await services.event_store.find())


async def pending_reminder(services, task_id="t1"):
    return await services.queue.get_pending(QueueName.REMINDERS.value, reminder_job_key(task_id))


@pytest.mark.asyncio
async def test_created_task_with_due_date_and_assignee(services):
    due = utc_now() + timedelta(days=1)
    task = make_task(due_at=due, assignee_id="u2", assignee=bob())

    await services.lifecycle.on_created("u1", task, actor={"id": "u1", "email": "alice@example.com"})

    [event] = await services.event_store.find(type="TASK_CREATED")
    assert event.user_id == "u1"
    assert event.related["task"]["title"] == "Ship it"
    assert event.related["user"]["email"] == "alice@example.com"

    reminder = await pending_reminder(services)
    assert reminder.run_at >= due - timedelta(seconds=1)

    [mail_job] = services.queue.jobs(QueueName.MAIL.value)
    assert MailMessage.model_validate(mail_job.payload).subject == "New Task Assigned: Ship it"

    assert services.realtime.messages_for(project_room("p1"))[0][0] == "task_created"


@pytest.mark.asyncio
async def test_created_task_without_due_date_has_no_reminder(services):
    await services.lifecycle.on_created("u1", make_task())

    assert await pending_reminder(services) is None
    assert services.queue.jobs(QueueName.MAIL.value) == []


@pytest.mark.asyncio
async def test_creation_invalidates_actor_and_assignee_lists(services):
    for user in ("u1", "u2", "u3"):
        await services.cache.set(task_list_cache_key(user), [], 60)

    await services.lifecycle.on_created("u1", make_task(assignee_id="u2"))

    assert await services.cache.keys_matching("tasks:") == [task_list_cache_key("u3")]


@pytest.mark.asyncio
async def test_completing_task_cancels_reminder_and_records_completion(services):
    before = make_task(due_at=utc_now() + timedelta(days=1))
    await services.lifecycle.on_created("u1", before)
    after = before.model_copy(update={"status": "DONE"})

    await services.lifecycle.on_updated("u1", before, after, {"status": "DONE"})

    assert await pending_reminder(services) is None
    assert "TASK_COMPLETED" in await event_types(services)
    [changed] = await services.event_store.find(type="TASK_STATUS_CHANGED")
    assert changed.metadata["from"] == "TODO"
    assert changed.metadata["to"] == "DONE"


@pytest.mark.asyncio
async def test_removing_due_date_cancels_reminder(services):
    before = make_task(due_at=utc_now() + timedelta(days=1))
    await services.lifecycle.on_created("u1", before)

    await services.lifecycle.on_updated("u1", before, before.model_copy(update={"due_at": None}))

    assert await pending_reminder(services) is None


@pytest.mark.asyncio
async def test_moving_due_date_reschedules_single_reminder(services):
    before = make_task(due_at=utc_now() + timedelta(days=1))
    await services.lifecycle.on_created("u1", before)
    new_due = utc_now() + timedelta(days=3)

    await services.lifecycle.on_updated("u1", before, before.model_copy(update={"due_at": new_due}))

    assert await services.queue.count(QueueName.REMINDERS.value) == 1
    reminder = await pending_reminder(services)
    assert reminder.payload["due_at"].startswith(new_due.date().isoformat())


@pytest.mark.asyncio
async def test_reassignment_mails_new_assignee_and_invalidates_previous(services):
    for user in ("u1", "u2", "u9"):
        await services.cache.set(task_list_cache_key(user), [], 60)
    before = make_task(assignee_id="u9")
    after = make_task(assignee_id="u2", assignee=bob())

    await services.lifecycle.on_updated("u1", before, after, {"assignee_id": "u2"})

    assert len(services.queue.jobs(QueueName.MAIL.value)) == 1
    assert "TASK_ASSIGNED" in await event_types(services)
    assert await services.cache.keys_matching("tasks:") == []


@pytest.mark.asyncio
async def test_plain_update_records_only_update_event(services):
    before = make_task()
    after = before.model_copy(update={"title": "Ship it today"})

    await services.lifecycle.on_updated("u1", before, after, {"title": "Ship it today"})

    assert await event_types(services) == ["TASK_UPDATED"]
    assert services.realtime.messages_for(project_room("p1"))[0][0] == "task_updated"


@pytest.mark.asyncio
async def test_deleting_task_cancels_reminder_and_notifies_project(services):
    task = make_task(due_at=utc_now() + timedelta(days=1))
    await services.lifecycle.on_created("u1", task)

    await services.lifecycle.on_deleted("u1", task)

    assert await pending_reminder(services) is None
    assert "TASK_DELETED" in await event_types(services)
    assert ("task_deleted", {"id": "t1", "projectId": "p1"}) in services.realtime.messages_for(
        project_room("p1")
    )


@pytest.mark.asyncio
async def test_failing_step_does_not_block_the_rest(services, monkeypatch):
    async def broken(*args, **kwargs):
        raise ConnectionError("queue down")

    monkeypatch.setattr(services.reminders, "schedule_reminder", broken)
    task = make_task(due_at=utc_now() + timedelta(days=1))

    await services.lifecycle.on_created("u1", task)

    assert await event_types(services) == ["TASK_CREATED"]
    assert services.realtime.messages_for(project_room("p1"))
