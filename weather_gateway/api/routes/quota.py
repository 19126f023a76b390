from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from weather_gateway.api.deps import get_admission_controller
from weather_gateway.schemas.weather import QuotaUsageResponse, WindowUsageResponse
from weather_gateway.services.admission import AdmissionController

router = APIRouter(tags=["Quota"])


@router.get("/quota", response_model=QuotaUsageResponse)
async def get_quota_usage(
    admission: Annotated[AdmissionController, Depends(get_admission_controller)],
) -> QuotaUsageResponse:
    """Current consumption of every upstream quota window.

    Reading usage never consumes quota.
    """

    usage = await admission.usage()
    return QuotaUsageResponse(
        windows=[
            WindowUsageResponse(
                name=w.name,
                limit=w.limit,
                used=w.used,
                remaining=w.remaining,
                reset_at=w.reset_at,
            )
            for w in usage
        ]
    )
