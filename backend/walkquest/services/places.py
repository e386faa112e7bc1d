import asyncio
import logging
import re
from typing import Any, Dict, Optional

from walkquest.core.config import settings
from walkquest.models.route import PlaceMatch
from walkquest.services.twogis_client import TwoGISClient, twogis_client

logger = logging.getLogger(__name__)

# Generic descriptors the LLM prepends to names; 2GIS indexes the bare name
DESCRIPTOR_PATTERNS = (
    re.compile(r"архитектурный ансамбль", re.IGNORECASE),
    re.compile(r"культурный центр", re.IGNORECASE),
    re.compile(r"исторический", re.IGNORECASE),
    re.compile(r"памятник архитектуры", re.IGNORECASE),
    re.compile(r"здание", re.IGNORECASE),
)
STREET_PATTERN = re.compile(r"улица", re.IGNORECASE)
CITY_NOISE_PATTERN = re.compile(r"волжского|волжский", re.IGNORECASE)
WHITESPACE_PATTERN = re.compile(r"\s+")

MIN_SIMPLIFIED_LENGTH = 3


def simplify_query(query: str) -> str:
    simplified = query
    for pattern in DESCRIPTOR_PATTERNS:
        simplified = pattern.sub("", simplified)
    simplified = STREET_PATTERN.sub("ул.", simplified)
    simplified = WHITESPACE_PATTERN.sub(" ", simplified).strip()

    if CITY_NOISE_PATTERN.search(simplified):
        simplified = CITY_NOISE_PATTERN.sub("", simplified)
        simplified = WHITESPACE_PATTERN.sub(" ", simplified).strip()

    return simplified


class PlacesResolver:
    """Resolves a free-text place name to the best 2GIS catalog match.

    Never raises: transport errors, timeouts and empty results all come back
    as ``None``.
    """

    def __init__(
        self,
        client: Optional[TwoGISClient] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.client = client or twogis_client
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.PLACES_REQUEST_TIMEOUT_SECONDS
        )

    async def resolve(self, query: str, region_id: str) -> Optional[PlaceMatch]:
        try:
            item = await self._lookup(query, region_id)

            if item is None:
                logger.warning(f"❌ No place found for query: \"{query}\"")
                simplified = simplify_query(query)
                if simplified != query and len(simplified) > MIN_SIMPLIFIED_LENGTH:
                    logger.info(f"🔄 Fallback: simplified search \"{simplified}\"")
                    item = await self._lookup(simplified, region_id)
                if item is None:
                    return None
        except asyncio.TimeoutError:
            logger.error(f"2GIS search timed out after {self.timeout_seconds}s: \"{query}\"")
            return None
        except Exception as e:
            logger.error(f"Error searching place in 2GIS: {e}")
            return None

        return self._to_match(item, query)

    async def _lookup(self, query: str, region_id: str) -> Optional[Dict[str, Any]]:
        items = await asyncio.wait_for(
            self.client.search_places(query, region_id, limit=1),
            timeout=self.timeout_seconds,
        )
        if not items:
            return None
        return items[0]

    def _to_match(self, item: Dict[str, Any], query: str) -> Optional[PlaceMatch]:
        point = item.get("point") or {}
        lat = point.get("lat")
        lon = point.get("lon")

        if lat is None or lon is None:
            logger.warning(f"Place found but no coordinates: {item.get('name', query)}")
            return None

        return PlaceMatch(
            name=item.get("name") or query,
            address=item.get("address_name") or item.get("full_address_name"),
            lat=float(lat),
            lon=float(lon),
            source_id=str(item.get("id") or ""),
        )


places_resolver = PlacesResolver()
