import logging
from typing import Dict, Optional

from walkquest.core.config import settings
from walkquest.services.twogis_client import TwoGISClient, twogis_client

logger = logging.getLogger(__name__)

CITY_REGION_IDS: Dict[str, str] = {
    "saint-petersburg": "38",
    "moscow": "1",
    "volzhskiy": "117",
    "kazan": "4416",
    "yekaterinburg": "4",
    "novosibirsk": "67",
    "chelyabinsk": "76",
    "samara": "86",
    "omsk": "20",
    "rostov": "93",
    "ufa": "63",
    "krasnoyarsk": "88",
    "voronezh": "473",
    "perm": "296",
    "nizhny-novgorod": "5181",
}


def normalize_region_id(region_id: Optional[str]) -> str:
    """Region ids are opaque; only blank values are replaced."""
    if region_id is None or not str(region_id).strip():
        return settings.DEFAULT_REGION_ID
    return str(region_id).strip()


def region_id_for_city(city: str) -> str:
    return CITY_REGION_IDS.get(city.strip().lower(), settings.DEFAULT_REGION_ID)


async def resolve_region(
    lat: float,
    lon: float,
    client: Optional[TwoGISClient] = None,
) -> Optional[Dict[str, Optional[str]]]:
    """Address and region id for a point picked on the map."""
    client = client or twogis_client
    result = await client.reverse_geocode(lat, lon)
    if not result:
        logger.warning(f"Reverse geocoding returned nothing for ({lat}, {lon})")
        return None

    return {
        "address": result.get("address"),
        "region_id": normalize_region_id(result.get("region_id")),
    }
