"""
FastAPI dependency injection: settings, principal extraction, service clients, broker.
Everything is read from app.state, populated once by create_app.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings
from core.errors import AuthError, ExpiredTokenError
from core.security import Principal, TokenVerifier
from services.auth_client import AuthServiceClient
from services.broker import MessageBroker
from services.logging_client import LoggingServiceClient
from services.notes_client import NotesServiceClient
from services.profile_client import ProfileServiceClient
from utils.logging import get_logger

logger = get_logger(__name__)

UNAUTHORIZED_MESSAGE = "Token is not valid or has expired"

security_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def _unauthorized(settings: Settings) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED_MESSAGE,
        headers={"WWW-Authenticate": f'Bearer realm="{settings.JWT_REALM}"'},
    )


def _verify(verifier: TokenVerifier, token: str, settings: Settings) -> Principal:
    try:
        return verifier.authenticate(token)
    except AuthError as exc:
        # Reason is logged, never returned: expired and invalid look the same to the caller.
        logger.info(
            "auth_rejected",
            extra={"reason": "expired" if isinstance(exc, ExpiredTokenError) else "invalid"},
        )
        raise _unauthorized(settings) from exc


async def get_principal_optional(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Principal | None:
    """
    For routes that explicitly allow anonymous access.
    No header gives None; a header with a bad token is still 401.
    """
    if not credentials:
        return None
    return _verify(verifier, credentials.credentials, settings)


async def get_principal_required(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_token_verifier)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> Principal:
    """Required JWT auth: 401 if missing, invalid or expired."""
    if not credentials:
        raise _unauthorized(settings)
    return _verify(verifier, credentials.credentials, settings)


def get_broker(request: Request) -> MessageBroker:
    return request.app.state.broker


def get_auth_client(request: Request) -> AuthServiceClient:
    return request.app.state.clients.auth


def get_profile_client(request: Request) -> ProfileServiceClient:
    return request.app.state.clients.profile


def get_notes_client(request: Request) -> NotesServiceClient:
    return request.app.state.clients.notes


def get_logging_client(request: Request) -> LoggingServiceClient:
    return request.app.state.clients.logging


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
PrincipalOptional = Annotated[Principal | None, Depends(get_principal_optional)]
PrincipalRequired = Annotated[Principal, Depends(get_principal_required)]
BrokerDep = Annotated[MessageBroker, Depends(get_broker)]
AuthClientDep = Annotated[AuthServiceClient, Depends(get_auth_client)]
ProfileClientDep = Annotated[ProfileServiceClient, Depends(get_profile_client)]
NotesClientDep = Annotated[NotesServiceClient, Depends(get_notes_client)]
LoggingClientDep = Annotated[LoggingServiceClient, Depends(get_logging_client)]
