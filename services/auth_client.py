"""Client for the auth backend (Keycloak realm endpoints)."""

import httpx

from core.config import Settings
from models.auth import (
    Credential,
    IntrospectRequest,
    LogoutGrant,
    RegistrationRequest,
    RegistrationResponse,
    TokenGrant,
    TokenInfo,
    TokenResponse,
)
from services.base import ServiceClient
from utils.logging import get_logger

logger = get_logger(__name__)


class AuthServiceClient(ServiceClient):
    service_name = "auth"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__(http_client, settings.AUTH_SERVICE_URL, settings.HTTP_REQUEST_TIMEOUT_SECONDS)
        self._client_id = settings.AUTH_CLIENT_ID
        self._realm = settings.AUTH_REALM

    @property
    def _oidc(self) -> str:
        return f"/realms/{self._realm}/protocol/openid-connect"

    async def login(self, username: str, password: str) -> TokenResponse:
        logger.info("auth_login", extra={"username": username})
        grant = TokenGrant(
            grant_type="password", client_id=self._client_id, username=username, password=password
        )
        return await self.post(f"{self._oidc}/token", TokenResponse, grant)

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        logger.info("auth_refresh")
        grant = TokenGrant(grant_type="refresh_token", client_id=self._client_id, refresh_token=refresh_token)
        return await self.post(f"{self._oidc}/token", TokenResponse, grant)

    async def validate_token(self, token: str) -> TokenInfo:
        request = IntrospectRequest(token=token, client_id=self._client_id)
        return await self.post(f"{self._oidc}/token/introspect", TokenInfo, request)

    async def logout(self, refresh_token: str) -> None:
        logger.info("auth_logout")
        await self.post(f"{self._oidc}/logout", None, LogoutGrant(refresh_token=refresh_token, client_id=self._client_id))

    async def register(self, username: str, email: str, password: str) -> RegistrationResponse:
        logger.info("auth_register", extra={"username": username})
        request = RegistrationRequest(
            username=username,
            email=email,
            credentials=[Credential(value=password)],
        )
        return await self.post(f"/admin/realms/{self._realm}/users", RegistrationResponse, request)
