"""Rule matching: turn an event into automation jobs."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from taskflow.automation.conditions import evaluate
from taskflow.models import ActionJob, Event, QueueName
from taskflow.observability.metrics import metrics
from taskflow.queue.base import WorkQueue
from taskflow.stores.base import RuleStore

logger = logging.getLogger(__name__)


@dataclass
class MatchReport:
    """What happened to one event."""

    event_id: str
    rules_loaded: int = 0
    matched: list[str] = field(default_factory=list)
    enqueued: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    aborted: bool = False


class RuleMatcher:
    """Loads an event owner's enabled rules and enqueues one job per match.

    Rules are scoped to the event's own user. A rule matches when its
    trigger equals the event type exactly and its conditions hold.
    """

    def __init__(self, rule_store: RuleStore, queue: WorkQueue, max_attempts: Optional[int] = None):
        self.rule_store = rule_store
        self.queue = queue
        self.max_attempts = max_attempts

    async def process_event(self, event: Event) -> MatchReport:
        report = MatchReport(event_id=str(event.id))

        try:
            rules = await self.rule_store.find_enabled(owner_id=event.user_id)
        except Exception as e:
            logger.error(
                f"Could not load automation rules for user {event.user_id}, "
                f"skipping event {event.id}: {e}",
                exc_info=True,
            )
            metrics.inc_counter("automation.rule_load_errors")
            report.aborted = True
            return report

        report.rules_loaded = len(rules)
        candidates = [r for r in rules if r.trigger == event.type]
        if not candidates:
            return report

        payload = event.as_payload()
        for rule in candidates:
            rule_id = str(rule.id)
            try:
                if not evaluate(rule.conditions, payload):
                    continue
                report.matched.append(rule_id)
                metrics.inc_counter("automation.rules_matched")

                job = ActionJob(
                    rule_id=rule_id,
                    user_id=event.user_id,
                    actions=list(rule.actions),
                    event_data=payload,
                )
                await self.queue.enqueue(
                    QueueName.AUTOMATION.value,
                    job.model_dump(mode="json"),
                    name=f"rule:{rule_id}",
                    max_attempts=self.max_attempts,
                )
                report.enqueued.append(rule_id)
                metrics.inc_counter("jobs.enqueued.automation")
            except Exception as e:
                report.failed.append(rule_id)
                logger.error(
                    f"Failed to dispatch rule {rule_id} for event {event.id}: {e}",
                    exc_info=True,
                )

        if report.matched:
            logger.info(
                f"Event {event.type} ({event.id}): {len(report.matched)} rule(s) matched, "
                f"{len(report.enqueued)} job(s) enqueued"
            )
        return report
