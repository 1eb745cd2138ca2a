"""
Error taxonomy shared by the auth gate, backend proxy and broker.
All three collapse to a JSON body of the form {"error": "<message>"} at the HTTP boundary.
"""

import json


class AuthError(Exception):
    """Token could not be turned into a Principal. Always presented to callers as 401."""


class InvalidTokenError(AuthError):
    """Bad signature, issuer/audience mismatch, missing claim, or malformed token."""


class ExpiredTokenError(AuthError):
    """Signature is valid but the exp claim is in the past."""


class ServiceError(Exception):
    """
    Single failure shape for backend calls: HTTP error status, timeout,
    connection failure, or undecodable body.
    """

    def __init__(self, status_code: int, raw_body: str = "") -> None:
        super().__init__(f"Service request failed with status {status_code}")
        self.status_code = status_code
        self.raw_body = raw_body

    def __repr__(self) -> str:
        return f"ServiceError(status_code={self.status_code}, raw_body={self.raw_body[:200]!r})"


class BrokerError(Exception):
    """Publish/subscribe transport failure."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{message} (channel={channel})")
        self.channel = channel


GENERIC_UPSTREAM_MESSAGE = "Upstream service error"


def service_error_status(exc: ServiceError) -> int:
    """4xx passes through; timeouts stay 504; everything else is a bad gateway."""
    if 400 <= exc.status_code < 500:
        return exc.status_code
    if exc.status_code == 504:
        return 504
    return 502


def service_error_message(exc: ServiceError) -> str:
    """
    Only a backend's own 4xx error string is shown to clients.
    5xx bodies, transport details and decode errors are never exposed.
    """
    if 400 <= exc.status_code < 500:
        try:
            body = json.loads(exc.raw_body) if exc.raw_body else None
        except ValueError:
            body = None
        if isinstance(body, dict):
            for key in ("error", "message"):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value[:500]
        if exc.status_code == 404:
            return "Not found"
        return "Request rejected by upstream service"
    if exc.status_code == 504:
        return "Upstream service timed out"
    return GENERIC_UPSTREAM_MESSAGE
