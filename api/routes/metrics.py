"""Process metrics. Unauthenticated; meant for scraping from inside the cluster."""

from fastapi import APIRouter

from core.dependencies import BrokerDep
from models.schemas import ProcessMetrics
from services.system_service import SystemService

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_model=ProcessMetrics)
async def metrics(broker: BrokerDep) -> ProcessMetrics:
    channels = {name: state.value for name, state in broker.channels().items()}
    return await SystemService.process_metrics(channels)
