"""Notes and notification payloads, plus the events published when notes change."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from models.schemas import WireModel


class Note(WireModel):
    id: str | None = None
    user_id: str
    title: str
    content: str
    date: str | None = None


class NoteInput(WireModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(default="", max_length=100_000)
    date: str | None = None


class NoteEnvelope(WireModel):
    note: Note


class NoteList(WireModel):
    notes: list[Note]
    total: int
    page: int
    page_size: int


class NotificationAction(str, Enum):
    UNSPECIFIED = "UNSPECIFIED"
    COMPLETE = "COMPLETE"
    DISMISS = "DISMISS"
    SNOOZE = "SNOOZE"


class NotificationSnooze(str, Enum):
    UNSPECIFIED = "UNSPECIFIED"
    FIVE_MINUTES = "FIVE_MINUTES"
    FIFTEEN_MINUTES = "FIFTEEN_MINUTES"
    THIRTY_MINUTES = "THIRTY_MINUTES"
    ONE_HOUR = "ONE_HOUR"
    FIVE_HOURS = "FIVE_HOURS"
    ONE_DAY = "ONE_DAY"


class Notification(WireModel):
    id: str | None = None
    user_id: str
    title: str
    description: str
    create_date: str | None = None
    notification_date: str


class NotificationInput(WireModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="", max_length=10_000)
    notification_date: str


class NotificationEnvelope(WireModel):
    notification: Notification


class NotificationList(WireModel):
    notifications: list[Notification]
    total: int
    page: int
    page_size: int


class NotificationActionInput(WireModel):
    action: NotificationAction
    snooze_duration: NotificationSnooze | None = None


class NotificationActionRequest(WireModel):
    id: str
    user_id: str
    action: NotificationAction
    snooze_duration: NotificationSnooze | None = None


NOTE_EVENTS_CHANNEL = "notes.events"


class NoteEvent(WireModel):
    """Published on NOTE_EVENTS_CHANNEL after a note is created, updated or deleted."""

    type: str
    note_id: str
    user_id: str
    title: str | None = None
    occurred_at: datetime
