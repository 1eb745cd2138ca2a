"""Remote logging service payloads."""

from enum import Enum
from typing import Any

from pydantic import Field

from models.schemas import WireModel


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class LogRequest(WireModel):
    level: LogLevel
    message: str
    timestamp: str
    service: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class LogResponse(WireModel):
    id: str
    success: bool
    message: str = ""


class LogEntry(WireModel):
    id: str
    level: LogLevel
    message: str
    timestamp: str
    service: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class LogSearchResponse(WireModel):
    logs: list[LogEntry]
    total: int
    page: int
    page_size: int
    total_pages: int
