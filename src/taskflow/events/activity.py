"""Activity recording: domain actions become ``{ENTITY}_{ACTION}`` events."""

import logging
from typing import Any, Optional

from taskflow.events.bus import EventBus
from taskflow.models import ActivityAction, EntityType, Event, event_type_for

logger = logging.getLogger(__name__)


class ActivityRecorder:
    """Producer side of the event bus used by the task, comment and project services.

    Every helper is best-effort: it returns the recorded event, or ``None``
    if recording failed, and never raises into the calling service.
    """

    def __init__(self, bus: EventBus):
        self.bus = bus

    async def log(
        self,
        user_id: str,
        action: ActivityAction | str,
        entity_type: EntityType | str,
        entity_id: str,
        metadata: Optional[dict[str, Any]] = None,
        **related: Any,
    ) -> Optional[Event]:
        event_type = event_type_for(entity_type, action)
        payload = {"entity_id": entity_id, **(metadata or {})}
        try:
            return await self.bus.record(user_id, event_type, payload, related)
        except Exception as e:
            logger.error(f"Failed to log activity {event_type} for {entity_id}: {e}", exc_info=True)
            return None

    # Projects

    async def project_created(self, user_id: str, project_id: str, name: str) -> Optional[Event]:
        return await self.log(user_id, ActivityAction.CREATED, EntityType.PROJECT, project_id, {"name": name})

    async def project_updated(self, user_id: str, project_id: str, changes: dict[str, Any]) -> Optional[Event]:
        return await self.log(user_id, ActivityAction.UPDATED, EntityType.PROJECT, project_id, changes)

    async def project_deleted(self, user_id: str, project_id: str, name: str) -> Optional[Event]:
        return await self.log(user_id, ActivityAction.DELETED, EntityType.PROJECT, project_id, {"name": name})

    # Tasks

    async def task_created(self, user_id: str, task_id: str, title: str, **related: Any) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.CREATED, EntityType.TASK, task_id, {"title": title}, **related
        )

    async def task_updated(
        self, user_id: str, task_id: str, changes: dict[str, Any], **related: Any
    ) -> Optional[Event]:
        return await self.log(user_id, ActivityAction.UPDATED, EntityType.TASK, task_id, changes, **related)

    async def task_deleted(self, user_id: str, task_id: str, title: str, **related: Any) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.DELETED, EntityType.TASK, task_id, {"title": title}, **related
        )

    async def task_status_changed(
        self, user_id: str, task_id: str, old_status: str, new_status: str, **related: Any
    ) -> Optional[Event]:
        return await self.log(
            user_id,
            ActivityAction.STATUS_CHANGED,
            EntityType.TASK,
            task_id,
            {"from": old_status, "to": new_status},
            **related,
        )

    async def task_assigned(
        self, user_id: str, task_id: str, assignee_id: str, **related: Any
    ) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.ASSIGNED, EntityType.TASK, task_id, {"assignee_id": assignee_id}, **related
        )

    async def task_completed(self, user_id: str, task_id: str, title: str, **related: Any) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.COMPLETED, EntityType.TASK, task_id, {"title": title}, **related
        )

    # Comments and membership

    async def comment_added(self, user_id: str, comment_id: str, task_id: str) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.COMMENTED, EntityType.COMMENT, comment_id, {"task_id": task_id}
        )

    async def member_added(self, user_id: str, project_id: str, member_id: str, role: str) -> Optional[Event]:
        return await self.log(
            user_id,
            ActivityAction.MEMBER_ADDED,
            EntityType.MEMBER,
            member_id,
            {"project_id": project_id, "role": role},
        )

    async def member_removed(self, user_id: str, project_id: str, member_id: str) -> Optional[Event]:
        return await self.log(
            user_id, ActivityAction.MEMBER_REMOVED, EntityType.MEMBER, member_id, {"project_id": project_id}
        )

    async def role_changed(
        self, user_id: str, project_id: str, member_id: str, old_role: str, new_role: str
    ) -> Optional[Event]:
        return await self.log(
            user_id,
            ActivityAction.ROLE_CHANGED,
            EntityType.MEMBER,
            member_id,
            {"project_id": project_id, "from": old_role, "to": new_role},
        )
