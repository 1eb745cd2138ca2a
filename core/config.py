"""Application configuration via environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Environment-based configuration. Validated once at startup and frozen.
    JWT_SECRET / JWT_ISSUER / JWT_AUDIENCE have no defaults: a missing value fails startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    APP_NAME: str = Field(default="service-gateway", description="Service name for logs and headers")
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    DEBUG: bool = Field(default=False, description="Enable debug mode")

    HOST: str = Field(default="0.0.0.0", description="Bind address; 0.0.0.0 for containers")
    PORT: int = Field(default=8080, ge=1, le=65535)

    JWT_SECRET: str = Field(..., min_length=1)
    JWT_ISSUER: str = Field(..., min_length=1)
    JWT_AUDIENCE: str = Field(..., min_length=1)
    JWT_ALGORITHM: Literal["HS256"] = Field(default="HS256")
    JWT_REALM: str = Field(default="Service Gateway")
    JWT_ACCESS_EXPIRE_MINUTES: int = Field(default=30, ge=1)

    AUTH_SERVICE_URL: str = Field(default="http://localhost:8081")
    PROFILE_SERVICE_URL: str = Field(default="http://localhost:8082")
    TRAINING_SERVICE_URL: str = Field(default="http://localhost:8083")
    DIET_SERVICE_URL: str = Field(default="http://localhost:8084")
    FEED_SERVICE_URL: str = Field(default="http://localhost:8085")
    NOTES_SERVICE_URL: str = Field(default="http://localhost:8086")
    STATISTICS_SERVICE_URL: str = Field(default="http://localhost:8087")
    FILE_SERVICE_URL: str = Field(default="http://localhost:8088")
    DB_SERVICE_URL: str = Field(default="http://localhost:8089")
    LOGGING_SERVICE_URL: str = Field(default="http://localhost:8090")

    AUTH_CLIENT_ID: str = Field(default="mad-mobile-app")
    AUTH_REALM: str = Field(default="mad")

    HTTP_CONNECT_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    HTTP_REQUEST_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    HTTP_SOCKET_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    HTTP_MAX_CONNECTIONS: int = Field(default=1000, ge=1)

    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379, ge=1, le=65535)
    REDIS_PASSWORD: str | None = Field(default=None)
    REDIS_MAX_CONNECTIONS: int = Field(default=100, ge=1)
    REDIS_SOCKET_TIMEOUT_SECONDS: float = Field(default=2.0, gt=0)

    BROKER_RECONNECT_ATTEMPTS: int = Field(default=5, ge=0)
    BROKER_RECONNECT_BACKOFF_SECONDS: float = Field(default=0.5, ge=0)

    CORS_ORIGINS: str = Field(default="*", description="Comma-separated origins or *")

    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=False, description="JSON logs for cloud aggregators")
    REMOTE_LOGGING_ENABLED: bool = Field(default=True, description="Mirror route events to the logging service")

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def empty_password_is_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def redis_display_url(self) -> str:
        """Broker address safe for logs."""
        if self.REDIS_PASSWORD:
            return f"redis://:***@{self.REDIS_HOST}:{self.REDIS_PORT}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance. Use for DI; avoids re-reading env on every request."""
    return Settings()
