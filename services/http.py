"""
Shared outbound HTTP client. One pooled httpx.AsyncClient per process, reused by every
service client; closed in the app lifespan.
"""

import httpx

from core.config import Settings
from utils.logging import get_logger

logger = get_logger(__name__)


async def _log_request(request: httpx.Request) -> None:
    logger.debug("backend_request", extra={"method": request.method, "url": str(request.url)})


async def _log_response(response: httpx.Response) -> None:
    logger.debug(
        "backend_response",
        extra={
            "method": response.request.method,
            "url": str(response.request.url),
            "status": response.status_code,
        },
    )


def create_http_client(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Connect and idle-socket bounds live on the client; the whole-request bound is enforced
    per call by ServiceClient. Pass a transport to stub backends in tests.
    """
    timeout = httpx.Timeout(
        connect=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
        read=settings.HTTP_SOCKET_TIMEOUT_SECONDS,
        write=settings.HTTP_SOCKET_TIMEOUT_SECONDS,
        pool=settings.HTTP_CONNECT_TIMEOUT_SECONDS,
    )
    limits = httpx.Limits(
        max_connections=settings.HTTP_MAX_CONNECTIONS,
        max_keepalive_connections=min(100, settings.HTTP_MAX_CONNECTIONS),
    )
    return httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        headers={"Accept": "application/json"},
        event_hooks={"request": [_log_request], "response": [_log_response]},
        transport=transport,
    )
