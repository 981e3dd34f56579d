"""Taskflow errors."""


class TaskflowError(Exception):
    """Base error for Taskflow operations."""

    def __init__(self, message: str, code: str = "TASKFLOW_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class RetryableError(TaskflowError):
    """Transient infrastructure failure; the work queue should retry the job."""

    def __init__(self, message: str, code: str = "RETRYABLE"):
        super().__init__(message, code)


class QueueUnavailable(RetryableError):
    """The work queue could not accept or hand out jobs."""

    def __init__(self, queue: str, reason: str = ""):
        super().__init__(
            f"Queue {queue} unavailable" + (f": {reason}" if reason else ""),
            "QUEUE_UNAVAILABLE",
        )
        self.queue = queue


class MailDeliveryError(RetryableError):
    """Outbound mail transport rejected or failed to deliver a message."""

    def __init__(self, to: str, reason: str):
        super().__init__(f"Failed to deliver mail to {to}: {reason}", "MAIL_DELIVERY_FAILED")
        self.to = to
        self.reason = reason


class ActionJobIncomplete(RetryableError):
    """One or more actions in an automation job failed retryably."""

    def __init__(self, rule_id: str, failed_actions: list[str]):
        super().__init__(
            f"Rule {rule_id}: retryable failure in actions {', '.join(failed_actions)}",
            "ACTION_JOB_INCOMPLETE",
        )
        self.rule_id = rule_id
        self.failed_actions = failed_actions


class RuleNotFound(TaskflowError):
    """Automation rule does not exist for this owner."""

    def __init__(self, rule_id: str):
        super().__init__(f"Automation rule not found: {rule_id}", "RULE_NOT_FOUND")
        self.rule_id = rule_id

