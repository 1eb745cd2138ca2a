"""
Pydantic schemas shared across routes and service clients.
Backends speak camelCase JSON; WireModel maps it to snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for payloads exchanged with backends and clients (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Every error body the gateway returns."""

    error: str

    model_config = {"extra": "forbid"}


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Minimal health payload for probes."""

    status: str = "UP"
    service: str = "service-gateway"


class ReadinessResponse(BaseModel):
    ready: bool = True
    checks: dict[str, str] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}


class ProcessMetrics(BaseModel):
    pid: int
    cpu_percent: float
    memory_rss_mb: float
    memory_percent: float
    threads: int
    open_files: int
    uptime_seconds: float
    broker_channels: dict[str, str] = Field(default_factory=dict)
