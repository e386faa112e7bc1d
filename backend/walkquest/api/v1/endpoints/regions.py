import logging
from typing import Dict

from fastapi import APIRouter, HTTPException

from walkquest.models.schemas import RegionResolveRequest, RegionResolveResponse
from walkquest.services.regions import CITY_REGION_IDS, resolve_region

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=Dict[str, str])
async def list_regions() -> Dict[str, str]:
    return CITY_REGION_IDS


@router.post("/resolve", response_model=RegionResolveResponse)
async def resolve_point_region(request: RegionResolveRequest) -> RegionResolveResponse:
    """Find the 2GIS region for a start point picked on the map"""

    try:
        result = await resolve_region(request.lat, request.lon)
    except Exception as e:
        logger.error(f"Reverse geocoding failed: {e}")
        raise HTTPException(status_code=502, detail="2GIS geocoder is unavailable") from e

    if not result:
        raise HTTPException(status_code=404, detail="Не удалось определить регион для точки")

    return RegionResolveResponse(address=result["address"], region_id=result["region_id"])
