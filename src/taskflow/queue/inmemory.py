"""In-process work queue for development and tests."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Callable, Optional
from uuid import UUID, uuid4

from taskflow.models import Job, JobStatus
from taskflow.queue.base import WorkQueue, lease_deadline, retry_delay_seconds
from taskflow.utils.time import utc_now

logger = logging.getLogger(__name__)


class InMemoryWorkQueue(WorkQueue):
    """Dict-backed queue with the same semantics as the SQL queue.

    Not durable across restarts and not shared between processes.
    """

    def __init__(
        self,
        default_max_attempts: int = 3,
        default_retry_backoff_seconds: int = 15,
        max_retry_backoff_seconds: int = 900,
        default_lease_seconds: int = 120,
        clock: Callable = utc_now,
    ):
        self._jobs: dict[UUID, Job] = {}
        self._lock = asyncio.Lock()
        self.default_max_attempts = default_max_attempts
        self.default_retry_backoff_seconds = default_retry_backoff_seconds
        self.max_retry_backoff_seconds = max_retry_backoff_seconds
        self.default_lease_seconds = default_lease_seconds
        self.clock = clock

    async def enqueue(
        self,
        queue: str,
        payload: dict[str, Any],
        *,
        name: str = "",
        delay: Optional[float] = None,
        job_key: Optional[str] = None,
        remove_on_complete: bool = False,
        max_attempts: Optional[int] = None,
        retry_backoff_seconds: Optional[int] = None,
    ) -> Job:
        now = self.clock()
        job = Job(
            job_id=uuid4(),
            queue=queue,
            name=name,
            job_key=job_key,
            payload=payload,
            max_attempts=max_attempts or self.default_max_attempts,
            retry_backoff_seconds=retry_backoff_seconds or self.default_retry_backoff_seconds,
            run_at=now + timedelta(seconds=delay or 0),
            remove_on_complete=remove_on_complete,
            created_at=now,
            updated_at=now,
        )
        async with self._lock:
            if job_key:
                existing = self._find_pending(queue, job_key)
                if existing:
                    del self._jobs[existing.job_id]
                    logger.debug(f"Replaced pending job {existing.job_id} for key {job_key}")
            self._jobs[job.job_id] = job
        return job

    async def remove(self, queue: str, job_key: str) -> bool:
        async with self._lock:
            existing = self._find_pending(queue, job_key)
            if not existing:
                return False
            del self._jobs[existing.job_id]
            return True

    async def get_pending(self, queue: str, job_key: str) -> Optional[Job]:
        return self._find_pending(queue, job_key)

    async def claim(
        self,
        queue: str,
        worker_id: str,
        max_jobs: int = 1,
        lease_seconds: Optional[int] = None,
    ) -> list[Job]:
        now = self.clock()
        expires_at = lease_deadline(now, lease_seconds or self.default_lease_seconds)
        async with self._lock:
            due = sorted(
                (
                    j for j in self._jobs.values()
                    if j.queue == queue and j.status == JobStatus.QUEUED and j.run_at <= now
                ),
                key=lambda j: (j.run_at, j.created_at),
            )[:max_jobs]

            claimed = []
            for job in due:
                leased = job.model_copy(update={
                    "status": JobStatus.LEASED,
                    "lease_owner": worker_id,
                    "lease_expires_at": expires_at,
                    "updated_at": now,
                })
                self._jobs[job.job_id] = leased
                claimed.append(leased)
            return claimed

    async def complete(self, job: Job) -> bool:
        async with self._lock:
            current = self._held_lease(job)
            if not current:
                return False
            if current.remove_on_complete:
                del self._jobs[job.job_id]
            else:
                self._jobs[job.job_id] = current.model_copy(update={
                    "status": JobStatus.SUCCEEDED,
                    "lease_owner": None,
                    "lease_expires_at": None,
                    "updated_at": self.clock(),
                })
            return True

    async def retry_or_fail(self, job: Job, error: str) -> Optional[Job]:
        now = self.clock()
        async with self._lock:
            current = self._held_lease(job)
            if not current:
                return None
            attempt = current.attempt + 1
            values: dict[str, Any] = {
                "attempt": attempt,
                "last_error": error,
                "lease_owner": None,
                "lease_expires_at": None,
                "updated_at": now,
            }
            if current.attempts_exhausted():
                values["status"] = JobStatus.FAILED
            else:
                delay = retry_delay_seconds(current, attempt, self.max_retry_backoff_seconds)
                values["status"] = JobStatus.QUEUED
                values["run_at"] = now + timedelta(seconds=delay)
            updated = current.model_copy(update=values)
            self._jobs[job.job_id] = updated
            return updated

    async def expire_leases(self, limit: int = 100, jitter_seconds: float = 0.0) -> int:
        now = self.clock()
        async with self._lock:
            expired = [
                j for j in self._jobs.values()
                if j.status == JobStatus.LEASED and j.lease_expires_at and j.lease_expires_at < now
            ][:limit]
            for job in expired:
                # Lost authority, not a failed attempt: attempt stays the same.
                self._jobs[job.job_id] = job.model_copy(update={
                    "status": JobStatus.QUEUED,
                    "lease_owner": None,
                    "lease_expires_at": None,
                    "run_at": now + timedelta(seconds=jitter_seconds),
                    "updated_at": now,
                })
            return len(expired)

    async def count(self, queue: str, status: Optional[JobStatus] = None) -> int:
        return sum(
            1 for j in self._jobs.values()
            if j.queue == queue and (status is None or j.status == status)
        )

    def jobs(self, queue: Optional[str] = None) -> list[Job]:
        """Snapshot of every job, for inspection."""
        return [j for j in self._jobs.values() if queue is None or j.queue == queue]

    def _find_pending(self, queue: str, job_key: str) -> Optional[Job]:
        for job in self._jobs.values():
            if job.queue == queue and job.job_key == job_key and job.status == JobStatus.QUEUED:
                return job
        return None

    def _held_lease(self, job: Job) -> Optional[Job]:
        current = self._jobs.get(job.job_id)
        if (
            current is None
            or current.status != JobStatus.LEASED
            or current.lease_owner != job.lease_owner
        ):
            logger.warning(f"Lease lost for job {job.job_id} (worker {job.lease_owner})")
            return None
        return current
