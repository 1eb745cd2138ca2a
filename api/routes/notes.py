"""
Notebook routes: notes and notifications scoped to the authenticated user.
Note changes are announced on the broker; a broker outage never fails the request.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Response, status

from core.dependencies import BrokerDep, LoggingClientDep, NotesClientDep, PrincipalRequired
from models.logs import LogLevel
from models.notes import (
    NOTE_EVENTS_CHANNEL,
    Note,
    NoteEvent,
    NoteInput,
    NoteList,
    Notification,
    NotificationActionInput,
    NotificationInput,
    NotificationList,
)
from services.broker import MessageBroker
from utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/notebook", tags=["notebook"])

PageQuery = Query(default=1, ge=1)
PageSizeQuery = Query(default=20, ge=1, le=100, alias="pageSize")


def _ensure_owner(owner_id: str, subject: str) -> None:
    if owner_id != subject:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


async def _announce(broker: MessageBroker, event_type: str, note_id: str, user_id: str, title: str | None) -> None:
    event = NoteEvent(
        type=event_type,
        note_id=note_id,
        user_id=user_id,
        title=title,
        occurred_at=datetime.now(UTC),
    )
    if not await broker.publish_best_effort(NOTE_EVENTS_CHANNEL, event):
        logger.warning("note_event_dropped", extra={"event": event_type, "note_id": note_id})


# Notes

@router.get("/notes", response_model=NoteList)
async def list_notes(
    principal: PrincipalRequired,
    notes: NotesClientDep,
    page: int = PageQuery,
    page_size: int = PageSizeQuery,
) -> NoteList:
    return await notes.list_notes(principal.subject, page, page_size)


@router.post("/notes", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note(
    body: NoteInput,
    principal: PrincipalRequired,
    notes: NotesClientDep,
    broker: BrokerDep,
    remote_log: LoggingClientDep,
    background: BackgroundTasks,
) -> Note:
    created = await notes.create_note(Note(user_id=principal.subject, **body.model_dump()))
    if created.id:
        await _announce(broker, "created", created.id, principal.subject, created.title)
    background.add_task(
        remote_log.report,
        LogLevel.INFO,
        f"Note created: {created.title}",
        {"userId": principal.subject, "noteId": created.id},
    )
    return created


@router.get("/notes/{note_id}", response_model=Note)
async def get_note(note_id: str, principal: PrincipalRequired, notes: NotesClientDep) -> Note:
    note = await notes.get_note(note_id)
    _ensure_owner(note.user_id, principal.subject)
    return note


@router.put("/notes/{note_id}", response_model=Note)
async def update_note(
    note_id: str,
    body: NoteInput,
    principal: PrincipalRequired,
    notes: NotesClientDep,
    broker: BrokerDep,
) -> Note:
    existing = await notes.get_note(note_id)
    _ensure_owner(existing.user_id, principal.subject)
    updated = await notes.update_note(Note(id=note_id, user_id=principal.subject, **body.model_dump()))
    await _announce(broker, "updated", note_id, principal.subject, updated.title)
    return updated


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(note_id: str, principal: PrincipalRequired, notes: NotesClientDep, broker: BrokerDep) -> Response:
    existing = await notes.get_note(note_id)
    _ensure_owner(existing.user_id, principal.subject)
    await notes.delete_note(note_id, principal.subject)
    await _announce(broker, "deleted", note_id, principal.subject, None)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Notifications

@router.get("/notifications", response_model=NotificationList)
async def list_notifications(
    principal: PrincipalRequired,
    notes: NotesClientDep,
    page: int = PageQuery,
    page_size: int = PageSizeQuery,
) -> NotificationList:
    return await notes.list_notifications(principal.subject, page, page_size)


@router.post("/notifications", response_model=Notification, status_code=status.HTTP_201_CREATED)
async def create_notification(
    body: NotificationInput,
    principal: PrincipalRequired,
    notes: NotesClientDep,
) -> Notification:
    return await notes.create_notification(Notification(user_id=principal.subject, **body.model_dump()))


@router.get("/notifications/{notification_id}", response_model=Notification)
async def get_notification(notification_id: str, principal: PrincipalRequired, notes: NotesClientDep) -> Notification:
    notification = await notes.get_notification(notification_id)
    _ensure_owner(notification.user_id, principal.subject)
    return notification


@router.post("/notifications/{notification_id}/actions", response_model=Notification)
async def notification_action(
    notification_id: str,
    body: NotificationActionInput,
    principal: PrincipalRequired,
    notes: NotesClientDep,
) -> Notification:
    return await notes.perform_notification_action(
        notification_id, principal.subject, body.action, body.snooze_duration
    )
