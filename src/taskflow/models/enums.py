"""Taskflow enumerations."""

from enum import Enum


class JobStatus(str, Enum):
    """Work queue job lifecycle status."""

    QUEUED = "queued"
    LEASED = "leased"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class QueueName(str, Enum):
    """Logical queues serviced by the work queue."""

    AUTOMATION = "automation"
    MAIL = "mail"
    REMINDERS = "reminders"


class ActionName(str, Enum):
    """Built-in automation actions."""

    EMAIL_ASSIGNEE = "EMAIL_ASSIGNEE"
    EMAIL_OWNER = "EMAIL_OWNER"
    ARCHIVE_TASK = "ARCHIVE_TASK"
    # Names used by rules created before the split into assignee/owner mail
    SEND_EMAIL = "SEND_EMAIL"
    CREATE_TASK = "CREATE_TASK"


class ActionOutcome(str, Enum):
    """Result of attempting a single action."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_IMPLEMENTED = "not_implemented"


class NotificationSeverity(str, Enum):
    """In-app notification severity."""

    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"


class EntityType(str, Enum):
    """Entities the activity log reports on."""

    PROJECT = "PROJECT"
    TASK = "TASK"
    COMMENT = "COMMENT"
    MEMBER = "MEMBER"


class ActivityAction(str, Enum):
    """Activity verbs; combined with EntityType into event tags."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    COMMENTED = "COMMENTED"
    STATUS_CHANGED = "STATUS_CHANGED"
    MEMBER_ADDED = "MEMBER_ADDED"
    MEMBER_REMOVED = "MEMBER_REMOVED"
    ROLE_CHANGED = "ROLE_CHANGED"


AUTOMATION_EXECUTED = "AUTOMATION_EXECUTED"


def event_type_for(entity_type: EntityType | str, action: ActivityAction | str) -> str:
    """Build the ``{ENTITY}_{ACTION}`` event tag, e.g. ``TASK_CREATED``."""
    entity = entity_type.value if isinstance(entity_type, EntityType) else entity_type
    verb = action.value if isinstance(action, ActivityAction) else action
    return f"{entity}_{verb}"
