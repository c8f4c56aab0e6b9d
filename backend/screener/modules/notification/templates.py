"""Email templates for moderation events."""

from html import escape

from screener.modules.notification.models import NotificationEvent
from screener.modules.notification.schemas import EmailPayload

SUBJECTS = {
    NotificationEvent.FLAGGED: "Your content has been flagged for moderation",
    NotificationEvent.APPROVED: "Your content has been approved",
    NotificationEvent.REJECTED: "Your content has been rejected",
}


def _content_label(content_type: str) -> str:
    return content_type.lower()


def render_text(payload: EmailPayload) -> str:
    """Plain-text body for an event."""
    label = _content_label(payload.content_type)
    lines = [f"Hello {payload.username},", ""]

    if payload.event == NotificationEvent.FLAGGED:
        lines.append(f"Your {label} has been flagged for review by our moderation system.")
        if payload.reason:
            lines.append(f"Reason: {payload.reason}")
        lines.append("A moderator will review it shortly.")
    elif payload.event == NotificationEvent.APPROVED:
        lines.append(f"Good news! Your {label} has been reviewed and approved by a moderator.")
    else:
        lines.append(f"Your {label} has been reviewed and rejected by a moderator.")
        reason = payload.rejection_reason or payload.reason
        if reason:
            lines.append(f"Reason: {reason}")
        lines.append("Please review our community guidelines.")

    lines.extend(["", "Thank you,", "The Moderation Team"])
    return "\n".join(lines)


def render_html(payload: EmailPayload) -> str:
    """HTML body; the plain-text paragraphs with user data escaped."""
    subject = escape(SUBJECTS[payload.event])
    paragraphs = "".join(
        f"<p>{escape(line)}</p>" for line in render_text(payload).split("\n") if line
    )
    return f"<html><body><h2>{subject}</h2>{paragraphs}</body></html>"


def render_email(payload: EmailPayload) -> tuple[str, str, str]:
    """Returns (subject, text body, html body)."""
    return SUBJECTS[payload.event], render_text(payload), render_html(payload)
