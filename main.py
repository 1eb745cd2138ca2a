"""
Application entry point. FastAPI gateway with middleware, routers and shared clients.
Run: uvicorn main:app --host 0.0.0.0 --port 8080
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import auth_router, health_router, metrics_router, notes_router, profile_router
from core.config import Settings, get_settings
from core.errors import ServiceError, service_error_message, service_error_status
from core.middleware import RequestIdMiddleware, RequestTimingMiddleware, SecureHeadersMiddleware
from core.security import TokenVerifier
from services.broker import MessageBroker
from services.clients import ServiceClients
from services.http import create_http_client
from utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: log configuration summary.
    Shutdown: close broker channels and the HTTP pool.
    """
    settings: Settings = app.state.settings
    logger.info(
        "startup",
        extra={
            "app": settings.APP_NAME,
            "env": settings.ENVIRONMENT,
            "jwt_issuer": settings.JWT_ISSUER,
            "jwt_audience": settings.JWT_AUDIENCE,
            "redis": settings.redis_display_url,
        },
    )
    yield
    await app.state.broker.close()
    await app.state.http_client.aclose()
    logger.info("shutdown", extra={"app": settings.APP_NAME})


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def create_app(
    settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
    broker: MessageBroker | None = None,
) -> FastAPI:
    """
    Factory for the gateway. Settings are resolved once here and handed to every
    component; tests pass fakes for the HTTP client and broker.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Authenticated API gateway in front of the backend services",
        version="1.0.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    http_client = http_client or create_http_client(settings)
    app.state.settings = settings
    app.state.token_verifier = TokenVerifier.from_settings(settings)
    app.state.http_client = http_client
    app.state.clients = ServiceClients.build(http_client, settings)
    app.state.broker = broker or MessageBroker(settings)

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(SecureHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(notes_router)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return _error(exc.status_code, message, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"Invalid request: {location} {first.get('msg', '')}".strip()
        return _error(422, message)

    @app.exception_handler(ServiceError)
    async def service_exception_handler(request: Request, exc: ServiceError):
        status_code = service_error_status(exc)
        log = logger.error if status_code >= 500 else logger.info
        log(
            "upstream_error",
            extra={"path": request.url.path, "upstream_status": exc.status_code, "status": status_code},
        )
        return _error(status_code, service_error_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", extra={"path": request.url.path})
        return _error(500, "Internal server error")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    s = get_settings()
    uvicorn.run(
        "main:app",
        host=s.HOST,
        port=s.PORT,
        reload=s.ENVIRONMENT == "development",
        log_level=s.LOG_LEVEL.lower(),
    )
