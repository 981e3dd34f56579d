"""Lease expiry sweep background task."""

import asyncio
import logging
import random
from typing import Optional

from taskflow.observability.metrics import metrics
from taskflow.queue.base import WorkQueue

logger = logging.getLogger("taskflow.sweep")


class LeaseSweeper:
    """
    Requeues jobs whose worker lease ran out.

    A lapsed lease means the worker crashed or stalled, not that the job
    failed, so the job goes back to ``queued`` without consuming an attempt.

    - Sweep interval is jittered by +/-20% so instances do not sweep in lockstep
    - Small batches keep each transaction short
    - Requeued jobs get 0-5s of jitter so they are not all claimed at once
    """

    def __init__(self, queue: WorkQueue, interval_seconds: float = 5, batch_size: int = 20):
        self.queue = queue
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self._task: Optional[asyncio.Task] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    async def sweep_once(self) -> int:
        expired = await self.queue.expire_leases(
            limit=self.batch_size, jitter_seconds=random.uniform(0, 5)
        )
        if expired:
            metrics.inc_counter("jobs.leases_expired", expired)
            logger.info(f"Expired {expired} leases and requeued jobs")
        return expired

    async def _loop(self) -> None:
        logger.info(
            f"Lease sweep loop started (base interval: {self.interval_seconds}s with ±20% jitter)"
        )

        while not self._shutdown_event.is_set():
            try:
                await self.sweep_once()
            except Exception as e:
                logger.error(f"Lease sweep error: {e}", exc_info=True)

            interval = self.interval_seconds * random.uniform(0.8, 1.2)
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Lease sweep loop stopped")

    async def start(self) -> None:
        """Start the lease sweep background task."""
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        """Stop the lease sweep background task."""
        if self._shutdown_event:
            self._shutdown_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("Lease sweep task did not stop gracefully, cancelling")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._task = None
        self._shutdown_event = None
