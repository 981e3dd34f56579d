"""Event model - immutable record of a domain occurrence."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from taskflow.utils.time import utc_now


class Event(BaseModel):
    """An activity event as recorded by the event bus.

    Related entities (``task``, ``user``, ``project``) travel as extra
    top-level keys so rule conditions and action handlers can reach them
    with dotted paths such as ``task.assignee.email``.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    type: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def related(self) -> dict[str, Any]:
        """Embedded related entities (everything outside the core fields)."""
        return dict(self.model_extra or {})

    def as_payload(self) -> dict[str, Any]:
        """JSON-safe dict used for condition evaluation and job payloads."""
        return self.model_dump(mode="json")


# Keys a related-entity map may not use
CORE_FIELDS = frozenset(Event.model_fields)
