"""Service status endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from ..dependencies import get_air_quality_service
from ..services.aggregation_service import AirQualityService

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(service: AirQualityService = Depends(get_air_quality_service)):
    return {
        "status": "ok",
        "mode": "offline" if service.offline else "live",
        "providers": [provider.name for provider in service.providers],
        "cached_locations": len(service.cache),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
