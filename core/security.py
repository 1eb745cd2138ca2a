"""
JWT verification for the gateway's route-level auth gate.
Tokens are HS256-signed and must carry iss, aud, sub and exp. The verifier is built
once from settings and is pure afterwards: no I/O, no shared mutable state.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from core.config import Settings
from core.errors import ExpiredTokenError, InvalidTokenError

_REQUIRED_CLAIMS = {
    "require_exp": True,
    "require_sub": True,
    "require_iss": True,
    "require_aud": True,
    "leeway": 0,
}


@dataclass(frozen=True)
class Principal:
    """Verified caller identity. Lives for one request; never persisted."""

    subject: str
    expires_at: datetime
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def username(self) -> str | None:
        return self.claims.get("preferred_username")

    def seconds_until_expiry(self, now: datetime | None = None) -> int:
        now = now or datetime.now(UTC)
        return max(0, int((self.expires_at - now).total_seconds()))


class TokenVerifier:
    """Turns a bearer token into a Principal or raises an AuthError subclass."""

    def __init__(self, secret: str, issuer: str, audience: str, algorithm: str = "HS256") -> None:
        if not secret or not issuer or not audience:
            raise ValueError("JWT secret, issuer and audience are required")
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        return cls(
            secret=settings.JWT_SECRET,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            algorithm=settings.JWT_ALGORITHM,
        )

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def audience(self) -> str:
        return self._audience

    def authenticate(self, token: str) -> Principal:
        """
        Verify signature, issuer (exact), audience (containment) and expiry.
        Raises ExpiredTokenError when only the expiry check fails, InvalidTokenError otherwise.
        """
        if not token or not isinstance(token, str):
            raise InvalidTokenError("empty token")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                issuer=self._issuer,
                options=_REQUIRED_CLAIMS,
            )
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError("token has expired") from exc
        except JWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError("subject claim must be a non-empty string")
        try:
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidTokenError("exp claim is not a timestamp") from exc
        return Principal(subject=subject, expires_at=expires_at, claims=dict(claims))


def create_access_token(
    subject: str | int,
    settings: Settings,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """
    Mint a token the gateway will accept. Tokens normally come from the auth service;
    this exists for local tooling and tests.
    """
    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES))
    payload: dict[str, Any] = dict(extra_claims or {})
    payload.update(
        {
            "sub": str(subject),
            "iss": settings.JWT_ISSUER,
            "aud": settings.JWT_AUDIENCE,
            "exp": expire,
            "iat": now,
        }
    )
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
