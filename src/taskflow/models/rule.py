"""Automation rule model."""

from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from taskflow.utils.time import utc_now


class Condition(BaseModel):
    """A single field/operator/value test against an event."""

    model_config = ConfigDict(populate_by_name=True)

    field: str
    operator: str = Field(validation_alias=AliasChoices("operator", "op"))
    value: Any = None


class AutomationRule(BaseModel):
    """Owner-scoped trigger + conditions + actions.

    ``conditions`` is normally a list of :class:`Condition`. Rules written
    with a key/value mapping (or nothing at all) are kept as-is and treated
    as unconditional by the evaluator.
    """

    id: UUID = Field(default_factory=uuid4)
    owner_id: str
    trigger: str
    conditions: Optional[Union[list[Condition], dict[str, Any]]] = None
    actions: list[str] = Field(default_factory=list)
    enabled: bool = True
    created_at: datetime = Field(default_factory=utc_now)

    def conditions_payload(self) -> Any:
        """Conditions as stored (plain JSON)."""
        if isinstance(self.conditions, list):
            return [c.model_dump(mode="json") for c in self.conditions]
        return self.conditions
