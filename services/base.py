"""
Base class for backend service clients.

Every verb takes an explicit response type and either returns a value of that type or
raises ServiceError. HTTP error statuses, timeouts, connection failures and undecodable
bodies all surface the same way, so callers handle exactly one exception type.
"""

import asyncio
from functools import lru_cache
from typing import Any, Mapping, TypeVar

import httpx
import pydantic_core
from pydantic import BaseModel, TypeAdapter, ValidationError

from core.errors import ServiceError
from utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

TIMEOUT_STATUS = 504
BAD_GATEWAY_STATUS = 502


@lru_cache(maxsize=256)
def _adapter(response_type: Any) -> TypeAdapter:
    return TypeAdapter(response_type)


def encode_body(body: Any) -> bytes:
    """Serialize a request body to JSON. Pydantic models use their wire aliases."""
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode()
    return pydantic_core.to_json(body, by_alias=True)


class ServiceClient:
    """
    Generic proxy to one backend. base_url is fixed at construction; the only other
    state is the shared httpx client, so instances are safe for concurrent use.
    """

    service_name = "service"

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        request_timeout: float = 30.0,
    ) -> None:
        self._http = http_client
        self.base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout

    async def get(
        self,
        path: str,
        response_type: type[T],
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> T:
        return await self._request("GET", path, response_type, headers=headers, params=params)

    async def post(
        self,
        path: str,
        response_type: type[T] | None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> T | None:
        return await self._request("POST", path, response_type, body, headers, params)

    async def put(
        self,
        path: str,
        response_type: type[T] | None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> T | None:
        return await self._request("PUT", path, response_type, body, headers, params)

    async def patch(
        self,
        path: str,
        response_type: type[T] | None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> T | None:
        return await self._request("PATCH", path, response_type, body, headers, params)

    async def delete(
        self,
        path: str,
        response_type: type[T] | None = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> T | None:
        return await self._request("DELETE", path, response_type, headers=headers, params=params)

    async def health_check(self) -> str:
        """healthy / unhealthy / unreachable, from GET /health on the backend."""
        try:
            await self.get("/health", dict)
        except ServiceError as exc:
            return "unreachable" if exc.status_code in (TIMEOUT_STATUS, BAD_GATEWAY_STATUS) else "unhealthy"
        return "healthy"

    async def _request(
        self,
        method: str,
        path: str,
        response_type: Any,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        request_headers = httpx.Headers(headers or {})
        content = None
        if body is not None:
            content = encode_body(body)
            request_headers["Content-Type"] = "application/json"

        try:
            response = await asyncio.wait_for(
                self._http.request(
                    method,
                    url,
                    content=content,
                    headers=request_headers,
                    params=dict(params) if params else None,
                ),
                timeout=self._request_timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            logger.warning(
                "service_timeout",
                extra={"service": self.service_name, "method": method, "path": path},
            )
            raise ServiceError(TIMEOUT_STATUS, f"{self.service_name} request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "service_unreachable",
                extra={"service": self.service_name, "method": method, "path": path, "error": str(exc)},
            )
            raise ServiceError(BAD_GATEWAY_STATUS, f"{self.service_name} request failed: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "service_error_status",
                extra={
                    "service": self.service_name,
                    "method": method,
                    "path": path,
                    "status": response.status_code,
                },
            )
            raise ServiceError(response.status_code, response.text)

        if response_type is None:
            return None
        try:
            return _adapter(response_type).validate_json(response.content)
        except ValidationError as exc:
            logger.warning(
                "service_decode_error",
                extra={"service": self.service_name, "method": method, "path": path, "errors": exc.error_count()},
            )
            raise ServiceError(BAD_GATEWAY_STATUS, response.text or str(exc)) from exc
