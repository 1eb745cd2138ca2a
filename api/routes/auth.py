"""
Authentication routes: thin pass-through to the auth backend.
Backend 4xx answers are replaced by fixed messages; 5xx and timeouts go to the global handler.
"""

from typing import NoReturn

from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from core.dependencies import AuthClientDep, LoggingClientDep, PrincipalRequired
from core.errors import ServiceError
from models.auth import (
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    RegistrationResponse,
    TokenResponse,
    ValidateResponse,
)
from models.logs import LogLevel
from models.schemas import MessageResponse

router = APIRouter(prefix="/api/auth", tags=["auth"])

# Failure reports are awaited before the error response goes out.
FAILURE_REPORT_TIMEOUT_SECONDS = 2.0


def _reject(exc: ServiceError, status_code: int, message: str) -> NoReturn:
    if 400 <= exc.status_code < 500:
        raise HTTPException(status_code=status_code, detail=message) from exc
    raise exc


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    auth: AuthClientDep,
    remote_log: LoggingClientDep,
    background: BackgroundTasks,
) -> TokenResponse:
    try:
        tokens = await auth.login(body.username, body.password)
    except ServiceError as exc:
        await remote_log.report(
            LogLevel.ERROR,
            "Login failed",
            {"username": body.username},
            error=exc,
            timeout=FAILURE_REPORT_TIMEOUT_SECONDS,
        )
        _reject(exc, status.HTTP_401_UNAUTHORIZED, "Invalid credentials")
    background.add_task(remote_log.report, LogLevel.INFO, f"User logged in: {body.username}", {"username": body.username})
    return tokens


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    auth: AuthClientDep,
    remote_log: LoggingClientDep,
    background: BackgroundTasks,
) -> RegistrationResponse:
    try:
        created = await auth.register(body.username, body.email, body.password)
    except ServiceError as exc:
        await remote_log.report(
            LogLevel.ERROR,
            "Registration failed",
            {"username": body.username},
            error=exc,
            timeout=FAILURE_REPORT_TIMEOUT_SECONDS,
        )
        _reject(exc, status.HTTP_400_BAD_REQUEST, "Registration failed")
    background.add_task(
        remote_log.report, LogLevel.INFO, f"User registered: {body.username}", {"username": body.username}
    )
    return created


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, auth: AuthClientDep) -> TokenResponse:
    try:
        return await auth.refresh_token(body.refresh_token)
    except ServiceError as exc:
        _reject(exc, status.HTTP_401_UNAUTHORIZED, "Invalid refresh token")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    principal: PrincipalRequired,
    auth: AuthClientDep,
    remote_log: LoggingClientDep,
    background: BackgroundTasks,
) -> MessageResponse:
    try:
        await auth.logout(body.refresh_token)
    except ServiceError as exc:
        _reject(exc, status.HTTP_400_BAD_REQUEST, "Logout failed")
    background.add_task(
        remote_log.report, LogLevel.INFO, "User logged out", {"username": principal.username or "unknown"}
    )
    return MessageResponse(message="Logged out successfully")


@router.get("/validate", response_model=ValidateResponse)
async def validate(principal: PrincipalRequired) -> ValidateResponse:
    """Echo the verified identity. No backend call: the gateway already checked the token."""
    return ValidateResponse(
        user_id=principal.subject,
        username=principal.username,
        expires_in=principal.seconds_until_expiry(),
    )
