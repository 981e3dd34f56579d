"""Work queue abstraction shared by the automation, mail and reminders queues."""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Optional, Protocol

from taskflow.models import Job, JobStatus


class JobProcessor(Protocol):
    """Anything that can process one job from a queue."""

    async def process(self, job: Job) -> Any:
        ...


def retry_delay_seconds(job: Job, attempt: int, max_backoff_seconds: int) -> int:
    """Exponential backoff: base * 2^(attempt-1), capped at max."""
    return min(job.retry_backoff_seconds * (2 ** max(attempt - 1, 0)), max_backoff_seconds)


class WorkQueue(ABC):
    """Durable, at-least-once job queue.

    Semantics every backend honours:

    - ``enqueue`` with a ``job_key`` replaces a still-pending job with the
      same key on the same queue, so at most one pending job exists per key.
    - ``claim`` hands out due jobs under a time-bounded lease; a job whose
      lease lapses is put back by ``expire_leases`` without consuming an
      attempt.
    - ``retry_or_fail`` records a failed attempt and either requeues with
      exponential backoff or marks the job failed once attempts run out.
    """

    @abstractmethod
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
        """Add a job; raises ``QueueUnavailable`` when the backend is down."""

    @abstractmethod
    async def remove(self, queue: str, job_key: str) -> bool:
        """Remove the pending job with this key, if any."""

    @abstractmethod
    async def get_pending(self, queue: str, job_key: str) -> Optional[Job]:
        """The pending job with this key, if any."""

    @abstractmethod
    async def claim(
        self,
        queue: str,
        worker_id: str,
        max_jobs: int = 1,
        lease_seconds: Optional[int] = None,
    ) -> list[Job]:
        """Lease up to ``max_jobs`` due jobs, oldest first."""

    @abstractmethod
    async def complete(self, job: Job) -> bool:
        """Mark a leased job done; ``False`` if the lease was lost meanwhile."""

    @abstractmethod
    async def retry_or_fail(self, job: Job, error: str) -> Optional[Job]:
        """Record a failed attempt; requeue with backoff or mark failed.

        Returns ``None`` without touching the job if the lease was lost
        meanwhile, like ``complete``.
        """

    @abstractmethod
    async def expire_leases(self, limit: int = 100, jitter_seconds: float = 0.0) -> int:
        """Requeue jobs whose lease has lapsed. Returns how many."""

    @abstractmethod
    async def count(self, queue: str, status: Optional[JobStatus] = None) -> int:
        """Number of jobs on a queue, optionally in one status."""


def lease_deadline(now: datetime, lease_seconds: int) -> datetime:
    return now + timedelta(seconds=lease_seconds)
