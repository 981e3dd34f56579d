"""REST API router."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from taskflow.api.deps import get_services, get_user_id, verify_api_key
from taskflow.api.schemas import (
    AutomationExecutionsResponse,
    CancelReminderResponse,
    CreateRuleRequest,
    EventResponse,
    HealthResponse,
    ListEventsResponse,
    ListRulesResponse,
    RecordEventRequest,
    ReminderResponse,
    RuleResponse,
    ScheduleReminderRequest,
    UpdateRuleRequest,
)
from taskflow.errors import RuleNotFound
from taskflow.models import AUTOMATION_EXECUTED, AutomationRule
from taskflow.observability.metrics import metrics
from taskflow.services import Services

router = APIRouter(prefix="/v1", dependencies=[Depends(verify_api_key)])

VERSION = "0.1.0"


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(services: Services = Depends(get_services)):
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=VERSION, instance_id=services.instance_id)


@router.get("/metrics")
async def get_metrics(services: Services = Depends(get_services)):
    """Process-local counters, gauges and duration histograms."""
    metrics.set_gauge("events.pending", services.bus.pending)
    return metrics.snapshot()


# ============================================================================
# Events & analytics
# ============================================================================


@router.post("/events", response_model=EventResponse, status_code=202)
async def record_event(
    request: RecordEventRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """
    Record an activity event.

    The event is stored before the response; rule matching runs in the
    background and never affects the response.
    """
    event = await services.bus.record(user_id, request.type, request.metadata, request.related)
    if event is None:
        raise HTTPException(status_code=503, detail="Event store unavailable")
    return EventResponse.from_event(event)


@router.get("/events", response_model=ListEventsResponse)
async def list_events(
    type: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    events = await services.event_store.find(user_id=user_id, type=type, limit=limit)
    return ListEventsResponse(events=[EventResponse.from_event(e) for e in events])


@router.get("/analytics/automation-executions", response_model=AutomationExecutionsResponse)
async def automation_executions(
    days: int = Query(30, ge=1, le=365),
    services: Services = Depends(get_services),
):
    """Automation execution count and daily active users."""
    total = await services.event_store.count(type=AUTOMATION_EXECUTED)
    dau = await services.event_store.daily_active_users(days=days)
    return AutomationExecutionsResponse(total=total, daily_active_users=dau)


# ============================================================================
# Automation rules
# ============================================================================


@router.post("/automation/rules", response_model=RuleResponse, status_code=201)
async def create_rule(
    request: CreateRuleRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    rule = AutomationRule(
        owner_id=user_id,
        trigger=request.trigger,
        conditions=request.conditions,
        actions=request.actions,
        enabled=request.enabled,
    )
    created = await services.rule_store.create(rule)
    return RuleResponse.from_rule(created)


@router.get("/automation/rules", response_model=ListRulesResponse)
async def list_rules(
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    rules = await services.rule_store.list_for_owner(user_id)
    return ListRulesResponse(rules=[RuleResponse.from_rule(r) for r in rules])


@router.patch("/automation/rules/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: UUID,
    request: UpdateRuleRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Enable or disable a rule."""
    try:
        rule = await services.rule_store.set_enabled(user_id, rule_id, request.enabled)
    except RuleNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return RuleResponse.from_rule(rule)


@router.delete("/automation/rules/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: UUID,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    try:
        await services.rule_store.delete(user_id, rule_id)
    except RuleNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)


# ============================================================================
# Reminders
# ============================================================================


@router.post("/reminders", response_model=ReminderResponse)
async def schedule_reminder(
    request: ScheduleReminderRequest,
    user_id: str = Depends(get_user_id),
    services: Services = Depends(get_services),
):
    """Schedule (or reschedule) a task's reminder. Past due dates schedule nothing."""
    job = await services.reminders.schedule_reminder(
        request.task_id, request.project_id, user_id, request.due_at
    )
    if job is None:
        return ReminderResponse(task_id=request.task_id, scheduled=False)
    return ReminderResponse(task_id=request.task_id, scheduled=True, job_id=job.job_id, run_at=job.run_at)


@router.delete("/reminders/{task_id}", response_model=CancelReminderResponse)
async def cancel_reminder(
    task_id: str,
    services: Services = Depends(get_services),
):
    cancelled = await services.reminders.cancel_reminder(task_id)
    return CancelReminderResponse(task_id=task_id, cancelled=cancelled)
