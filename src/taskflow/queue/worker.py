"""Queue worker: claims jobs from one logical queue and runs its processor."""

import asyncio
import logging
import random
import time
from typing import Optional

from taskflow.models import Job, JobStatus
from taskflow.observability.metrics import metrics
from taskflow.queue.base import JobProcessor, WorkQueue

logger = logging.getLogger("taskflow.worker")


class QueueWorker:
    """
    Poll loop for a single queue.

    Each poll leases up to ``batch_size`` due jobs and processes them
    concurrently. A processor returning normally completes the job; any
    exception is recorded on the job and the queue's retry policy decides
    between a backoff requeue and a terminal failure. Delivery is
    at-least-once, so processors must tolerate re-delivery.
    """

    def __init__(
        self,
        queue: WorkQueue,
        queue_name: str,
        processor: JobProcessor,
        worker_id: str,
        batch_size: int = 10,
        lease_seconds: Optional[int] = None,
        poll_interval_seconds: float = 1.0,
    ):
        self.queue = queue
        self.queue_name = queue_name
        self.processor = processor
        self.worker_id = worker_id
        self.batch_size = batch_size
        self.lease_seconds = lease_seconds
        self.poll_interval_seconds = poll_interval_seconds

        self._task: Optional[asyncio.Task] = None
        self._shutdown_event: Optional[asyncio.Event] = None

    async def run_once(self) -> int:
        """Claim and process one batch. Returns the number of jobs claimed."""
        jobs = await self.queue.claim(
            self.queue_name,
            self.worker_id,
            max_jobs=self.batch_size,
            lease_seconds=self.lease_seconds,
        )
        if jobs:
            await asyncio.gather(*(self._handle(job) for job in jobs))
        return len(jobs)

    async def _handle(self, job: Job) -> None:
        start = time.perf_counter()
        try:
            await self.processor.process(job)
        except Exception as e:
            await self._record_failure(job, e)
            return
        finally:
            metrics.observe(
                f"jobs.duration_ms.{self.queue_name}", (time.perf_counter() - start) * 1000.0
            )

        if await self.queue.complete(job):
            metrics.inc_counter(f"jobs.completed.{self.queue_name}")
            logger.debug(f"Completed job {job.job_id} ({job.name or self.queue_name})")

    async def _record_failure(self, job: Job, error: Exception) -> None:
        message = f"{type(error).__name__}: {error}"
        try:
            updated = await self.queue.retry_or_fail(job, message)
        except Exception as e:
            # The lease will expire and the sweep will hand the job out again.
            logger.error(f"Could not record failure for job {job.job_id}: {e}", exc_info=True)
            return

        if updated is None:
            metrics.inc_counter(f"jobs.lease_lost.{self.queue_name}")
            return
        if updated.status == JobStatus.FAILED:
            metrics.inc_counter(f"jobs.failed.{self.queue_name}")
            logger.error(
                f"Job {job.job_id} on {self.queue_name} failed permanently after "
                f"{updated.attempt} attempts: {message}"
            )
        else:
            metrics.inc_counter(f"jobs.retried.{self.queue_name}")
            logger.warning(
                f"Job {job.job_id} on {self.queue_name} failed (attempt "
                f"{updated.attempt}/{updated.max_attempts}), retrying at {updated.run_at}: {message}"
            )

    async def _loop(self) -> None:
        logger.info(
            f"Worker {self.worker_id} started on queue {self.queue_name} "
            f"(batch {self.batch_size}, poll {self.poll_interval_seconds}s)"
        )

        while not self._shutdown_event.is_set():
            claimed = 0
            try:
                claimed = await self.run_once()
            except Exception as e:
                logger.error(f"Worker {self.worker_id} poll error: {e}", exc_info=True)

            # A full batch means more work is probably waiting.
            if claimed >= self.batch_size:
                continue

            # Jitter so workers in different processes do not poll in lockstep
            interval = self.poll_interval_seconds * random.uniform(0.8, 1.2)
            try:
                await asyncio.wait_for(self._shutdown_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        logger.info(f"Worker {self.worker_id} stopped on queue {self.queue_name}")

    async def start(self) -> None:
        """Start the poll loop as a background task."""
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop())

    async def stop(self, timeout: float = 10.0) -> None:
        """Signal shutdown and wait for in-flight jobs to finish."""
        if self._shutdown_event:
            self._shutdown_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Worker {self.worker_id} did not stop gracefully, cancelling")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass

        self._task = None
        self._shutdown_event = None
