"""Pydantic models for the Microsoft Graph resources we read (subset of fields)."""

from typing import Optional

from pydantic import BaseModel, Field


class EmailAddress(BaseModel):
    """Graph emailAddress."""

    address: Optional[str] = None
    name: Optional[str] = None


class Recipient(BaseModel):
    """Graph recipient (from, organizer, etc.)."""

    emailAddress: EmailAddress = EmailAddress()


class ItemBody(BaseModel):
    """Graph itemBody (message or event body)."""

    contentType: str = "text"  # "text" | "html"
    content: str = ""


class GraphEmail(BaseModel):
    """Microsoft Graph message resource (subset)."""

    id: str
    subject: Optional[str] = None
    from_: Optional[Recipient] = Field(None, alias="from")
    receivedDateTime: Optional[str] = None  # ISO 8601
    body: Optional[ItemBody] = None
    bodyPreview: Optional[str] = None
    isRead: bool = False
    hasAttachments: bool = False

    class Config:
        populate_by_name = True
        extra = "allow"


class MailFolder(BaseModel):
    """Microsoft Graph mailFolder resource."""

    id: str
    displayName: str = ""
    unreadItemCount: int = 0
    totalItemCount: int = 0
    childFolderCount: int = 0

    class Config:
        extra = "allow"


class DateTimeTimeZone(BaseModel):
    dateTime: str
    timeZone: str = "UTC"


class Location(BaseModel):
    displayName: Optional[str] = None


class ResponseStatus(BaseModel):
    response: Optional[str] = None
    time: Optional[str] = None


class Attendee(BaseModel):
    emailAddress: EmailAddress = EmailAddress()
    status: Optional[ResponseStatus] = None
    type: Optional[str] = None


class CalendarEvent(BaseModel):
    """Microsoft Graph event resource (subset)."""

    id: str
    subject: Optional[str] = None
    start: Optional[DateTimeTimeZone] = None
    end: Optional[DateTimeTimeZone] = None
    isAllDay: Optional[bool] = None
    location: Optional[Location] = None
    organizer: Optional[Recipient] = None
    attendees: Optional[list[Attendee]] = None
    bodyPreview: Optional[str] = None

    class Config:
        extra = "allow"
