"""Plain-text and HTML bodies for outbound mail."""

from html import escape
from typing import Any

from taskflow.models import MailMessage

FOOTER_TEXT = "(This is an automated message)"
FOOTER_HTML = "<hr/><small>To-Do List App Notification</small>"


def _task_lines(context: dict[str, Any]) -> list[tuple[str, str]]:
    return [
        ("Project", str(context.get("projectName", ""))),
        ("Task", str(context.get("taskTitle", ""))),
    ]


def _lines_for(message: MailMessage) -> list[tuple[str, str]]:
    ctx = message.context
    if message.template in ("task-assigned", "reminder"):
        return _task_lines(ctx)
    if message.template == "project-invitation":
        return [
            ("Project", str(ctx.get("projectName", ""))),
            ("Role", str(ctx.get("role", ""))),
            ("Invited by", str(ctx.get("inviterName", ""))),
        ]
    if message.template == "welcome":
        return [("Welcome", str(ctx.get("name", "")))]
    return []


def render(message: MailMessage) -> tuple[str, str]:
    """Return ``(text, html)`` for a queued message.

    The ``generic`` template (and any unknown one) sends ``context.body``
    verbatim.
    """
    lines = _lines_for(message)
    body = str(message.context.get("body", "")) if not lines else ""

    text_parts = ["To-Do List Notification", "-----------------------", message.subject, ""]
    text_parts += [f"{label}: {value}" for label, value in lines]
    if body:
        text_parts.append(body)
    text_parts += ["", FOOTER_TEXT]
    text = "\n".join(text_parts)

    html_parts = [f"<h2>{escape(message.subject)}</h2>"]
    html_parts += [f"<p><strong>{escape(label)}:</strong> {escape(value)}</p>" for label, value in lines]
    if body:
        html_parts.append("<p>" + escape(body).replace("\n", "<br/>") + "</p>")
    html_parts.append(FOOTER_HTML)
    html = '<div style="font-family: sans-serif;">' + "".join(html_parts) + "</div>"

    return text, html
