"""Client for the notes backend: notes and notifications."""

import httpx

from core.config import Settings
from models.notes import (
    Note,
    NoteEnvelope,
    NoteList,
    Notification,
    NotificationAction,
    NotificationActionRequest,
    NotificationEnvelope,
    NotificationList,
    NotificationSnooze,
)
from services.base import ServiceClient
from utils.logging import get_logger

logger = get_logger(__name__)


class NotesServiceClient(ServiceClient):
    service_name = "notes"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__(http_client, settings.NOTES_SERVICE_URL, settings.HTTP_REQUEST_TIMEOUT_SECONDS)

    # Notes

    async def create_note(self, note: Note) -> Note:
        logger.info("note_create", extra={"user_id": note.user_id})
        return await self.post("/notes", Note, NoteEnvelope(note=note))

    async def get_note(self, note_id: str) -> Note:
        return await self.get(f"/notes/{note_id}", Note)

    async def list_notes(self, user_id: str, page: int = 1, page_size: int = 20) -> NoteList:
        params = {"userId": user_id, "page": page, "pageSize": page_size}
        return await self.get("/notes", NoteList, params=params)

    async def update_note(self, note: Note) -> Note:
        logger.info("note_update", extra={"note_id": note.id})
        return await self.put(f"/notes/{note.id}", Note, NoteEnvelope(note=note))

    async def delete_note(self, note_id: str, user_id: str) -> None:
        logger.info("note_delete", extra={"note_id": note_id, "user_id": user_id})
        await self.delete(f"/notes/{note_id}", params={"userId": user_id})

    # Notifications

    async def create_notification(self, notification: Notification) -> Notification:
        return await self.post("/notifications", Notification, NotificationEnvelope(notification=notification))

    async def get_notification(self, notification_id: str) -> Notification:
        return await self.get(f"/notifications/{notification_id}", Notification)

    async def list_notifications(self, user_id: str, page: int = 1, page_size: int = 20) -> NotificationList:
        params = {"userId": user_id, "page": page, "pageSize": page_size}
        return await self.get("/notifications", NotificationList, params=params)

    async def perform_notification_action(
        self,
        notification_id: str,
        user_id: str,
        action: NotificationAction,
        snooze_duration: NotificationSnooze | None = None,
    ) -> Notification:
        request = NotificationActionRequest(
            id=notification_id, user_id=user_id, action=action, snooze_duration=snooze_duration
        )
        return await self.post(f"/notifications/{notification_id}/actions", Notification, request)
