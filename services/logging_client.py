"""
Client for the remote logging service. Routes mirror notable events here;
report() is best-effort and never raises.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import httpx

from core.config import Settings
from core.errors import ServiceError
from models.logs import LogEntry, LogLevel, LogRequest, LogResponse, LogSearchResponse
from services.base import ServiceClient
from utils.logging import get_logger

logger = get_logger(__name__)


class LoggingServiceClient(ServiceClient):
    service_name = "logging"
    source = "gateway"

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings) -> None:
        super().__init__(http_client, settings.LOGGING_SERVICE_URL, settings.HTTP_REQUEST_TIMEOUT_SECONDS)
        self.enabled = settings.REMOTE_LOGGING_ENABLED

    async def log(self, level: LogLevel, message: str, metadata: dict[str, Any] | None = None) -> LogResponse:
        request = LogRequest(
            level=level,
            message=message,
            timestamp=datetime.now(UTC).isoformat(),
            service=self.source,
            metadata=metadata or {},
        )
        return await self.post("/log", LogResponse, request)

    async def log_info(self, message: str, metadata: dict[str, Any] | None = None) -> LogResponse:
        return await self.log(LogLevel.INFO, message, metadata)

    async def log_warning(self, message: str, metadata: dict[str, Any] | None = None) -> LogResponse:
        return await self.log(LogLevel.WARNING, message, metadata)

    async def log_debug(self, message: str, metadata: dict[str, Any] | None = None) -> LogResponse:
        return await self.log(LogLevel.DEBUG, message, metadata)

    async def log_error(
        self,
        message: str,
        error: BaseException | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> LogResponse:
        data = dict(metadata or {})
        if error is not None:
            data["errorType"] = type(error).__name__
            data["errorMessage"] = str(error)
        return await self.log(LogLevel.ERROR, message, data)

    async def search_logs(
        self,
        level: LogLevel | None = None,
        service: str | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        message: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> LogSearchResponse:
        params: dict[str, Any] = {"page": page, "pageSize": page_size}
        if level is not None:
            params["level"] = level.value
        if service:
            params["service"] = service
        if start_time:
            params["startTime"] = start_time
        if end_time:
            params["endTime"] = end_time
        if message:
            params["message"] = message
        return await self.get("/search", LogSearchResponse, params=params)

    async def get_log(self, log_id: str) -> LogEntry:
        return await self.get(f"/logs/{log_id}", LogEntry)

    async def report(
        self,
        level: LogLevel,
        message: str,
        metadata: dict[str, Any] | None = None,
        error: BaseException | None = None,
        timeout: float | None = None,
    ) -> None:
        """timeout bounds the whole report, for callers that wait on it before responding."""
        if not self.enabled:
            return
        if level is LogLevel.ERROR:
            send = self.log_error(message, error, metadata)
        else:
            send = self.log(level, message, metadata)
        try:
            await asyncio.wait_for(send, timeout)
        except asyncio.TimeoutError:
            logger.warning("remote_log_timeout", extra={"timeout": timeout, "log_message": message})
        except ServiceError as exc:
            logger.warning("remote_log_failed", extra={"status": exc.status_code, "log_message": message})
