"""
Rule matcher tests.

A matching rule enqueues exactly one automation job; store and queue
failures are contained.
"""

import pytest

from taskflow.automation.matcher import RuleMatcher
from taskflow.errors import QueueUnavailable
from taskflow.models import ActionJob, AutomationRule, Event, QueueName
from taskflow.queue.inmemory import InMemoryWorkQueue


def make_rule(owner="u1", trigger="TASK_CREATED", conditions=None, actions=None, enabled=True):
    return AutomationRule(
        owner_id=owner,
        trigger=trigger,
        conditions=conditions,
        actions=actions or ["EMAIL_OWNER"],
        enabled=enabled,
    )


def task_created(user_id="u1", priority="HIGH"):
    return Event(
        user_id=user_id,
        type="TASK_CREATED",
        metadata={"priority": priority},
        task={"id": "t1", "title": "Write docs"},
    )


class FlakyQueue(InMemoryWorkQueue):
    """Fails the first enqueue, then behaves."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = 0

    async def enqueue(self, queue, payload, **kwargs):
        self.calls += 1
        if self.calls == 1:
            raise QueueUnavailable(queue, "connection refused")
        return await super().enqueue(queue, payload, **kwargs)


@pytest.mark.asyncio
async def test_only_matching_rule_enqueues_a_job(rule_store, queue):
    matching = await rule_store.create(
        make_rule(conditions=[{"field": "metadata.priority", "op": "=", "value": "HIGH"}])
    )
    await rule_store.create(
        make_rule(conditions=[{"field": "metadata.priority", "op": "=", "value": "LOW"}])
    )
    matcher = RuleMatcher(rule_store, queue)

    report = await matcher.process_event(task_created())

    jobs = queue.jobs(QueueName.AUTOMATION.value)
    assert len(jobs) == 1
    assert report.matched == [str(matching.id)]

    job = ActionJob.model_validate(jobs[0].payload)
    assert job.rule_id == str(matching.id)
    assert job.user_id == "u1"
    assert job.actions == ["EMAIL_OWNER"]
    assert job.event_data["type"] == "TASK_CREATED"
    assert job.event_data["task"]["title"] == "Write docs"


@pytest.mark.asyncio
async def test_each_matching_rule_gets_its_own_job(rule_store, queue):
    await rule_store.create(make_rule(actions=["EMAIL_OWNER"]))
    await rule_store.create(make_rule(actions=["EMAIL_ASSIGNEE"]))

    report = await RuleMatcher(rule_store, queue).process_event(task_created())

    assert len(report.enqueued) == 2
    assert await queue.count(QueueName.AUTOMATION.value) == 2


@pytest.mark.asyncio
async def test_trigger_must_match_exactly(rule_store, queue):
    await rule_store.create(make_rule(trigger="task_created"))
    await rule_store.create(make_rule(trigger="TASK_*"))
    await rule_store.create(make_rule(trigger="TASK_COMPLETED"))

    report = await RuleMatcher(rule_store, queue).process_event(task_created())

    assert report.rules_loaded == 3
    assert report.matched == []
    assert await queue.count(QueueName.AUTOMATION.value) == 0


@pytest.mark.asyncio
async def test_rules_are_scoped_to_event_owner(rule_store, queue):
    await rule_store.create(make_rule(owner="someone-else"))
    await rule_store.create(make_rule(enabled=False))

    report = await RuleMatcher(rule_store, queue).process_event(task_created())

    assert report.rules_loaded == 0
    assert await queue.count(QueueName.AUTOMATION.value) == 0


@pytest.mark.asyncio
async def test_object_form_conditions_match_unconditionally(rule_store, queue):
    await rule_store.create(make_rule(conditions={"priority": "LOW"}))

    report = await RuleMatcher(rule_store, queue).process_event(task_created(priority="HIGH"))

    assert len(report.enqueued) == 1


@pytest.mark.asyncio
async def test_rule_store_failure_aborts_without_raising(rule_store, queue):
    """Rule loading errors never reach the event producer."""
    await rule_store.create(make_rule())
    rule_store.fail_with = ConnectionError("database is down")

    report = await RuleMatcher(rule_store, queue).process_event(task_created())

    assert report.aborted is True
    assert await queue.count(QueueName.AUTOMATION.value) == 0


@pytest.mark.asyncio
async def test_enqueue_failure_does_not_stop_other_rules(rule_store, clock):
    first = await rule_store.create(make_rule(actions=["EMAIL_OWNER"]))
    second = await rule_store.create(make_rule(actions=["EMAIL_ASSIGNEE"]))
    queue = FlakyQueue(clock=clock)

    report = await RuleMatcher(rule_store, queue).process_event(task_created())

    assert queue.calls == 2
    assert len(report.failed) == 1
    assert len(report.enqueued) == 1
    assert set(report.failed + report.enqueued) == {str(first.id), str(second.id)}
    assert await queue.count(QueueName.AUTOMATION.value) == 1
