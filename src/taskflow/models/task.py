"""Task record as handed to lifecycle hooks by the task service."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

DONE_STATUSES = frozenset({"DONE", "COMPLETED"})


class Assignee(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class TaskSnapshot(BaseModel):
    """The fields of a task the automation subsystem cares about."""

    id: str
    project_id: str
    title: str
    status: str = "TODO"
    priority: str = "MEDIUM"
    assignee_id: Optional[str] = None
    assignee: Optional[Assignee] = None
    project_name: Optional[str] = None
    due_at: Optional[datetime] = None

    def is_done(self) -> bool:
        return self.status.upper() in DONE_STATUSES

    def as_event_entity(self) -> dict[str, Any]:
        """Embedded ``task`` record for events and action jobs."""
        return self.model_dump(mode="json")
