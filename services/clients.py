"""Builds every backend client once, from the same settings and shared HTTP pool."""

from dataclasses import dataclass

import httpx

from core.config import Settings
from services.auth_client import AuthServiceClient
from services.logging_client import LoggingServiceClient
from services.notes_client import NotesServiceClient
from services.profile_client import ProfileServiceClient


@dataclass(frozen=True)
class ServiceClients:
    auth: AuthServiceClient
    profile: ProfileServiceClient
    notes: NotesServiceClient
    logging: LoggingServiceClient

    @classmethod
    def build(cls, http_client: httpx.AsyncClient, settings: Settings) -> "ServiceClients":
        return cls(
            auth=AuthServiceClient(http_client, settings),
            profile=ProfileServiceClient(http_client, settings),
            notes=NotesServiceClient(http_client, settings),
            logging=LoggingServiceClient(http_client, settings),
        )
