"""Queue job envelope and the payloads carried by each logical queue."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from taskflow.models.enums import JobStatus


class Job(BaseModel):
    """A unit of work held by the work queue."""

    job_id: UUID
    queue: str
    name: str = ""
    job_key: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)

    status: JobStatus = JobStatus.QUEUED

    # Retry configuration
    attempt: int = 0
    max_attempts: int = 3
    retry_backoff_seconds: int = 15

    run_at: datetime
    remove_on_complete: bool = False

    # Lease (set while a worker holds the job)
    lease_owner: Optional[str] = None
    lease_expires_at: Optional[datetime] = None

    last_error: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def attempts_exhausted(self) -> bool:
        """True once the attempt in progress is the last one allowed."""
        return self.attempt + 1 >= self.max_attempts


class ActionJob(BaseModel):
    """Payload of an ``automation`` job: one matched rule for one event."""

    rule_id: str
    user_id: str
    actions: list[str]
    event_data: dict[str, Any] = Field(default_factory=dict)


class ReminderJob(BaseModel):
    """Payload of a ``reminders`` job."""

    task_id: str
    project_id: str
    user_id: str
    due_at: datetime
    message: str = "Task due now!"


class MailMessage(BaseModel):
    """Payload of a ``mail`` job."""

    to: str
    subject: str
    template: str = "generic"
    context: dict[str, Any] = Field(default_factory=dict)
