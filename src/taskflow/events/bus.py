"""Event bus: persist activity events, then hand them to the rule matcher.

Recording is synchronous with the store write and nothing else. Rule
matching happens in a background dispatch loop fed by an in-process queue,
so the domain action that raised the event never waits on automation and
never sees its errors.
"""

import asyncio
import logging
from typing import Any, Optional

from taskflow.automation.matcher import RuleMatcher
from taskflow.models import CORE_FIELDS, Event
from taskflow.observability.metrics import metrics
from taskflow.stores.base import EventStore

logger = logging.getLogger("taskflow.events")


class EventBus:
    def __init__(self, event_store: EventStore, matcher: RuleMatcher, max_pending: int = 10000):
        self.event_store = event_store
        self.matcher = matcher
        self._pending: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_pending)
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending(self) -> int:
        return self._pending.qsize()

    async def record(
        self,
        user_id: str,
        type: str,
        metadata: Optional[dict[str, Any]] = None,
        related: Optional[dict[str, Any]] = None,
    ) -> Optional[Event]:
        """Persist an event and queue it for rule matching.

        ``related`` holds embedded entities (``{"task": ..., "user": ...}``).
        Keys naming a core event field are dropped so the id, owner, type
        and timestamp always come from the bus. Returns ``None`` when the
        store write fails; the failure is logged, not raised.
        """
        extra = dict(related or {})
        shadowed = sorted(CORE_FIELDS.intersection(extra))
        if shadowed:
            logger.warning(f"Ignoring related keys {shadowed} on {type} event for user {user_id}")
            for key in shadowed:
                del extra[key]

        try:
            event = Event(**extra, user_id=user_id, type=type, metadata=metadata or {})
            stored = await self.event_store.create(event)
        except Exception as e:
            logger.error(f"Failed to record {type} event for user {user_id}: {e}", exc_info=True)
            metrics.inc_counter("events.record_errors")
            return None

        metrics.inc_counter("events.recorded")
        self.publish(stored)
        return stored

    def publish(self, event: Event) -> bool:
        """Queue an already-stored event for matching without waiting."""
        try:
            self._pending.put_nowait(event)
        except asyncio.QueueFull:
            logger.error(f"Event bus full, event {event.id} ({event.type}) not matched")
            metrics.inc_counter("events.dropped")
            return False
        return True

    async def _dispatch(self, event: Event) -> None:
        try:
            await self.matcher.process_event(event)
        except Exception as e:
            logger.error(f"Rule matching failed for event {event.id}: {e}", exc_info=True)

    async def _loop(self) -> None:
        logger.info("Event dispatch loop started")
        while True:
            event = await self._pending.get()
            try:
                await self._dispatch(event)
            finally:
                self._pending.task_done()

    async def start(self) -> None:
        """Start the background dispatch loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())

    async def drain(self) -> None:
        """Wait until every queued event has been matched.

        Without a running loop the queue is processed inline.
        """
        if self.running:
            await self._pending.join()
            return
        while not self._pending.empty():
            event = self._pending.get_nowait()
            try:
                await self._dispatch(event)
            finally:
                self._pending.task_done()

    async def stop(self, timeout: float = 10.0) -> None:
        """Finish queued events (bounded by ``timeout``) and stop the loop."""
        if not self._task:
            return

        try:
            await asyncio.wait_for(self._pending.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Event bus stopped with {self.pending} events unmatched")

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Event dispatch loop stopped")
