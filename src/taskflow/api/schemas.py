"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from taskflow.models import CORE_FIELDS, AutomationRule, Condition, Event


class HealthResponse(BaseModel):
    status: str
    version: str
    instance_id: str


# ============================================================================
# Events
# ============================================================================


class RecordEventRequest(BaseModel):
    """Record an activity event for the acting user."""

    type: str = Field(..., min_length=1, description="Event tag, e.g. TASK_CREATED")
    metadata: dict[str, Any] = Field(default_factory=dict)
    related: dict[str, Any] = Field(
        default_factory=dict,
        description="Embedded related entities (task, user, project) exposed to rules",
    )

    @field_validator("related")
    @classmethod
    def validate_related(cls, v: dict[str, Any]) -> dict[str, Any]:
        reserved = sorted(CORE_FIELDS.intersection(v))
        if reserved:
            raise ValueError(f"related may not set core event fields: {', '.join(reserved)}")
        return v


class EventResponse(BaseModel):
    id: UUID
    user_id: str
    type: str
    metadata: dict[str, Any]
    related: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_event(cls, event: Event) -> "EventResponse":
        payload = event.as_payload()
        return cls(
            id=event.id,
            user_id=event.user_id,
            type=event.type,
            metadata=payload["metadata"],
            related={key: payload[key] for key in event.related},
            created_at=event.created_at,
        )


class ListEventsResponse(BaseModel):
    events: list[EventResponse]


class AutomationExecutionsResponse(BaseModel):
    total: int
    daily_active_users: list[dict[str, Any]]


# ============================================================================
# Automation rules
# ============================================================================


class CreateRuleRequest(BaseModel):
    trigger: str = Field(..., min_length=1, description="Event tag the rule listens for")
    conditions: Optional[Union[list[Condition], dict[str, Any]]] = Field(
        default=None, description="List of {field, operator, value}; empty means always"
    )
    actions: list[str] = Field(default_factory=list, description="Action names, run in order")
    enabled: bool = True


class UpdateRuleRequest(BaseModel):
    enabled: bool


class RuleResponse(BaseModel):
    id: UUID
    owner_id: str
    trigger: str
    conditions: Any
    actions: list[str]
    enabled: bool
    created_at: datetime

    @classmethod
    def from_rule(cls, rule: AutomationRule) -> "RuleResponse":
        return cls(
            id=rule.id,
            owner_id=rule.owner_id,
            trigger=rule.trigger,
            conditions=rule.conditions_payload(),
            actions=rule.actions,
            enabled=rule.enabled,
            created_at=rule.created_at,
        )


class ListRulesResponse(BaseModel):
    rules: list[RuleResponse]


# ============================================================================
# Reminders
# ============================================================================


class ScheduleReminderRequest(BaseModel):
    task_id: str
    project_id: str
    due_at: datetime


class ReminderResponse(BaseModel):
    task_id: str
    scheduled: bool
    job_id: Optional[UUID] = None
    run_at: Optional[datetime] = None


class CancelReminderResponse(BaseModel):
    task_id: str
    cancelled: bool
