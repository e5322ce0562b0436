"""Per-provider health probes."""

from fastapi import APIRouter

from talktopost.controllers.dependencies import ServicesDep
from talktopost.views import HealthResponse

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/{provider}", response_model=HealthResponse)
async def provider_health(provider: str, services: ServicesDep) -> HealthResponse:
    report = await services.health.check(provider)
    return HealthResponse(
        provider=report.provider,
        status=report.status,
        detail=report.detail,
        latency_ms=report.latency_ms,
    )
