"""Payloads for the auth backend (Keycloak-style realm endpoints) and the /api/auth routes."""

from pydantic import BaseModel, Field

from models.schemas import WireModel


# Gateway-facing requests

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", max_length=320)
    password: str = Field(..., min_length=8, max_length=1024)


class RefreshRequest(WireModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(WireModel):
    refresh_token: str = Field(..., min_length=1)


class ValidateResponse(WireModel):
    user_id: str
    username: str | None = None
    expires_in: int


# Backend payloads

class TokenGrant(BaseModel):
    grant_type: str
    client_id: str
    username: str | None = None
    password: str | None = None
    refresh_token: str | None = None


class IntrospectRequest(BaseModel):
    token: str
    client_id: str


class LogoutGrant(BaseModel):
    refresh_token: str
    client_id: str


class Credential(BaseModel):
    type: str = "password"
    value: str
    temporary: bool = False


class RegistrationRequest(BaseModel):
    username: str
    email: str
    enabled: bool = True
    credentials: list[Credential]


class TokenResponse(BaseModel):
    access_token: str
    expires_in: int
    refresh_expires_in: int | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    session_state: str | None = None


class TokenInfo(BaseModel):
    active: bool
    exp: int | None = None
    iat: int | None = None
    sub: str | None = None
    iss: str | None = None
    scope: str | None = None
    email: str | None = None
    preferred_username: str | None = None


class RegistrationResponse(WireModel):
    id: str
    username: str
    email: str
    enabled: bool = True
    email_verified: bool = False
    created_timestamp: int | None = None
