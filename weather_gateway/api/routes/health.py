from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from weather_gateway.api.deps import GatewayServices, get_services

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(
    services: Annotated[GatewayServices, Depends(get_services)],
) -> dict:
    """Readiness check: the quota counter store must be reachable.

    An unreachable store surfaces as QuotaStoreUnavailable (HTTP 503), the
    same fail-closed answer weather endpoints would give.
    """

    await services.admission.usage()
    return {"status": "ready", "cache": services.cache.stats()}
