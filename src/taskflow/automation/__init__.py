"""Rule evaluation, matching and action execution."""

from taskflow.automation.conditions import MISSING, evaluate, resolve_path
from taskflow.automation.executor import (
    ActionExecutor,
    ActionJobReport,
    ActionResult,
    MailSink,
    NotificationSink,
)
from taskflow.automation.matcher import MatchReport, RuleMatcher

__all__ = [
    "MISSING",
    "ActionExecutor",
    "ActionJobReport",
    "ActionResult",
    "MailSink",
    "MatchReport",
    "NotificationSink",
    "RuleMatcher",
    "evaluate",
    "resolve_path",
]
