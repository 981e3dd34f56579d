"""PostgreSQL-backed work queue."""

import logging
from datetime import timedelta
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.base import Database
from taskflow.db.tables import JobTable
from taskflow.errors import QueueUnavailable
from taskflow.models import Job, JobStatus
from taskflow.queue.base import WorkQueue, lease_deadline, retry_delay_seconds
from taskflow.utils.time import utc_now

logger = logging.getLogger(__name__)


class JobRepository:
    """Repository for job rows within one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, job_id) -> Job | None:
        result = await self.session.execute(select(JobTable).where(JobTable.job_id == job_id))
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def get_pending(self, queue: str, job_key: str) -> Job | None:
        result = await self.session.execute(
            select(JobTable).where(
                JobTable.queue == queue,
                JobTable.job_key == job_key,
                JobTable.status == JobStatus.QUEUED,
            )
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def delete_pending(self, queue: str, job_key: str) -> bool:
        result = await self.session.execute(
            delete(JobTable).where(
                JobTable.queue == queue,
                JobTable.job_key == job_key,
                JobTable.status == JobStatus.QUEUED,
            )
        )
        return result.rowcount > 0

    async def claim_next(
        self,
        queue: str,
        worker_id: str,
        max_jobs: int,
        lease_seconds: int,
    ) -> list[Job]:
        """Atomically lease the oldest due jobs on a queue."""
        now = utc_now()
        expires_at = lease_deadline(now, lease_seconds)

        query = (
            select(JobTable)
            .where(
                JobTable.queue == queue,
                JobTable.status == JobStatus.QUEUED,
                JobTable.run_at <= now,
            )
            .order_by(JobTable.run_at.asc(), JobTable.created_at.asc())
            .limit(max_jobs)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(query)
        rows = list(result.scalars().all())

        for row in rows:
            row.status = JobStatus.LEASED
            row.lease_owner = worker_id
            row.lease_expires_at = expires_at
            row.updated_at = now

        await self.session.flush()
        return [self._row_to_model(r) for r in rows]

    async def get_expired(self, limit: int = 100) -> list[JobTable]:
        result = await self.session.execute(
            select(JobTable)
            .where(
                JobTable.status == JobStatus.LEASED,
                JobTable.lease_expires_at < utc_now(),
            )
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(result.scalars().all())

    def _held_lease_clause(self, job: Job):
        return (
            JobTable.job_id == job.job_id,
            JobTable.status == JobStatus.LEASED,
            JobTable.lease_owner == job.lease_owner,
        )

    async def finish(self, job: Job) -> bool:
        """Mark succeeded (or drop the row) if the lease is still held."""
        clause = self._held_lease_clause(job)
        if job.remove_on_complete:
            result = await self.session.execute(delete(JobTable).where(*clause))
        else:
            result = await self.session.execute(
                update(JobTable)
                .where(*clause)
                .values(
                    status=JobStatus.SUCCEEDED,
                    lease_owner=None,
                    lease_expires_at=None,
                    updated_at=utc_now(),
                )
            )
        return result.rowcount > 0

    async def requeue_with_backoff(
        self, job: Job, error: str, max_backoff_seconds: int
    ) -> Job | None:
        """Record a failed attempt if the lease is still held; requeue with backoff or mark failed."""
        now = utc_now()
        attempt = job.attempt + 1

        values: dict[str, Any] = {
            "attempt": attempt,
            "last_error": error,
            "lease_owner": None,
            "lease_expires_at": None,
            "updated_at": now,
        }
        if job.attempts_exhausted():
            values["status"] = JobStatus.FAILED
        else:
            backoff = retry_delay_seconds(job, attempt, max_backoff_seconds)
            values["status"] = JobStatus.QUEUED
            values["run_at"] = now + timedelta(seconds=backoff)

        result = await self.session.execute(
            update(JobTable).where(*self._held_lease_clause(job)).values(**values)
        )
        if result.rowcount == 0:
            return None
        return job.model_copy(update=values)

    def _row_to_model(self, row: JobTable) -> Job:
        """Convert database row to model."""
        return Job(
            job_id=row.job_id,
            queue=row.queue,
            name=row.name,
            job_key=row.job_key,
            payload=row.payload,
            status=row.status,
            attempt=row.attempt,
            max_attempts=row.max_attempts,
            retry_backoff_seconds=row.retry_backoff_seconds,
            run_at=row.run_at,
            remove_on_complete=row.remove_on_complete,
            lease_owner=row.lease_owner,
            lease_expires_at=row.lease_expires_at,
            last_error=row.last_error,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SqlWorkQueue(WorkQueue):
    """Work queue on the ``jobs`` table.

    Claiming uses ``FOR UPDATE SKIP LOCKED`` so any number of workers in any
    number of processes can poll the same queue. Key replacement relies on
    the partial unique index over pending ``(queue, job_key)``.
    """

    def __init__(
        self,
        db: Database,
        default_max_attempts: int = 3,
        default_retry_backoff_seconds: int = 15,
        max_retry_backoff_seconds: int = 900,
        default_lease_seconds: int = 120,
    ):
        self.db = db
        self.default_max_attempts = default_max_attempts
        self.default_retry_backoff_seconds = default_retry_backoff_seconds
        self.max_retry_backoff_seconds = max_retry_backoff_seconds
        self.default_lease_seconds = default_lease_seconds

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
        # A concurrent enqueue with the same key can win the unique index
        # between our delete and insert; one retry resolves it.
        for attempt in range(2):
            now = utc_now()
            row = JobTable(
                job_id=uuid4(),
                queue=queue,
                name=name,
                job_key=job_key,
                payload=payload,
                status=JobStatus.QUEUED,
                attempt=0,
                max_attempts=max_attempts or self.default_max_attempts,
                retry_backoff_seconds=retry_backoff_seconds or self.default_retry_backoff_seconds,
                run_at=now + timedelta(seconds=delay or 0),
                remove_on_complete=remove_on_complete,
                created_at=now,
                updated_at=now,
            )
            try:
                async with self.db.session() as session:
                    repo = JobRepository(session)
                    if job_key:
                        await repo.delete_pending(queue, job_key)
                    session.add(row)
                    await session.flush()
                    return repo._row_to_model(row)
            except IntegrityError:
                if attempt == 1:
                    raise QueueUnavailable(queue, f"could not replace pending job {job_key}")
                logger.debug(f"Pending job {job_key} raced on {queue}, retrying")
            except SQLAlchemyError as e:
                raise QueueUnavailable(queue, str(e)) from e
        raise QueueUnavailable(queue, "enqueue failed")

    async def remove(self, queue: str, job_key: str) -> bool:
        try:
            async with self.db.session() as session:
                return await JobRepository(session).delete_pending(queue, job_key)
        except SQLAlchemyError as e:
            raise QueueUnavailable(queue, str(e)) from e

    async def get_pending(self, queue: str, job_key: str) -> Optional[Job]:
        async with self.db.session() as session:
            return await JobRepository(session).get_pending(queue, job_key)

    async def claim(
        self,
        queue: str,
        worker_id: str,
        max_jobs: int = 1,
        lease_seconds: Optional[int] = None,
    ) -> list[Job]:
        async with self.db.session() as session:
            return await JobRepository(session).claim_next(
                queue,
                worker_id,
                max_jobs,
                lease_seconds or self.default_lease_seconds,
            )

    async def complete(self, job: Job) -> bool:
        async with self.db.session() as session:
            finished = await JobRepository(session).finish(job)
        if not finished:
            logger.warning(f"Lease lost for job {job.job_id} (worker {job.lease_owner})")
        return finished

    async def retry_or_fail(self, job: Job, error: str) -> Optional[Job]:
        async with self.db.session() as session:
            updated = await JobRepository(session).requeue_with_backoff(
                job, error, self.max_retry_backoff_seconds
            )
        if updated is None:
            logger.warning(f"Lease lost for job {job.job_id} (worker {job.lease_owner})")
        return updated

    async def expire_leases(self, limit: int = 100, jitter_seconds: float = 0.0) -> int:
        now = utc_now()
        async with self.db.session() as session:
            rows = await JobRepository(session).get_expired(limit)
            for row in rows:
                # Lost authority, not a failed attempt: attempt stays the same.
                row.status = JobStatus.QUEUED
                row.lease_owner = None
                row.lease_expires_at = None
                row.run_at = now + timedelta(seconds=jitter_seconds)
                row.updated_at = now
            return len(rows)

    async def count(self, queue: str, status: Optional[JobStatus] = None) -> int:
        query = select(func.count()).select_from(JobTable).where(JobTable.queue == queue)
        if status:
            query = query.where(JobTable.status == status)
        async with self.db.session() as session:
            result = await session.execute(query)
            return int(result.scalar_one())
