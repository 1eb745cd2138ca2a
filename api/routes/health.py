"""
Health and readiness endpoints for load balancers and Kubernetes.
No auth required; keep payload minimal for fast checks.
"""

from fastapi import APIRouter, Response, status

from core.dependencies import BrokerDep, SettingsDep
from models.schemas import HealthResponse, ReadinessResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
async def health(settings: SettingsDep) -> HealthResponse:
    """Liveness: is the process alive."""
    return HealthResponse(service=settings.APP_NAME)


@router.get("/ready", response_model=ReadinessResponse)
async def ready(settings: SettingsDep, broker: BrokerDep, response: Response) -> ReadinessResponse:
    """
    Readiness: config loaded and the broker answers PING.
    Backends are not probed; one slow backend should not pull the gateway out of rotation.
    """
    checks: dict[str, str] = {"config": "loaded"}
    broker_ok = await broker.ping()
    checks["broker"] = "ok" if broker_ok else "unavailable"
    if not broker_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(ready=broker_ok, checks=checks)


@router.get("/live", status_code=status.HTTP_200_OK)
async def live() -> Response:
    """Process is up and serving. No dependencies touched, empty body."""
    return Response(status_code=status.HTTP_200_OK)
