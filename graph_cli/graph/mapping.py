"""Map Graph resources to the smaller records the commands print."""

from typing import Any

from graph_cli.graph.models import CalendarEvent, GraphEmail, MailFolder


def _address(email: GraphEmail) -> dict[str, Any] | None:
    if email.from_ is None:
        return None
    return email.from_.emailAddress.model_dump()


def email_summary(raw: dict[str, Any]) -> dict[str, Any]:
    """Listing/search row for a message."""
    email = GraphEmail.model_validate(raw)
    return {
        "id": email.id,
        "subject": email.subject,
        "from": _address(email),
        "receivedDateTime": email.receivedDateTime,
        "bodyPreview": email.bodyPreview,
        "isRead": email.isRead,
        "hasAttachments": email.hasAttachments,
    }


def email_detail(raw: dict[str, Any]) -> dict[str, Any]:
    """Full record for `emails read`, including the body."""
    email = GraphEmail.model_validate(raw)
    record = email_summary(raw)
    record["body"] = email.body.model_dump() if email.body else None
    return record


def folder_summary(raw: dict[str, Any]) -> dict[str, Any]:
    folder = MailFolder.model_validate(raw)
    return {
        "id": folder.id,
        "displayName": folder.displayName,
        "unreadItemCount": folder.unreadItemCount,
        "totalItemCount": folder.totalItemCount,
        "childFolderCount": folder.childFolderCount,
    }


def event_summary(raw: dict[str, Any]) -> dict[str, Any]:
    event = CalendarEvent.model_validate(raw)
    return {
        "id": event.id,
        "subject": event.subject,
        "start": event.start.model_dump() if event.start else None,
        "end": event.end.model_dump() if event.end else None,
        "isAllDay": event.isAllDay or False,
        "location": event.location.displayName if event.location else None,
        "organizer": event.organizer.emailAddress.model_dump() if event.organizer else None,
        "attendees": [
            {
                "email": a.emailAddress.model_dump(),
                "status": a.status.response if a.status else None,
            }
            for a in (event.attendees or [])
        ],
        "bodyPreview": event.bodyPreview,
    }
