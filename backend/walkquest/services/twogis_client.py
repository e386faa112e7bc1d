import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from walkquest.core.config import settings
from walkquest.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class TwoGISClient:
    """Thin async client for the 2GIS Catalog and Geocoder APIs"""

    PLACES_URL = "https://catalog.api.2gis.com/3.0/items"
    GEOCODER_URL = "https://catalog.api.2gis.com/3.0/items/geocode"

    SEARCH_TYPES = "branch,building,attraction"

    def __init__(
        self,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.TWOGIS_API_KEY
        self._transport = transport

        if not self.api_key:
            logger.warning("2GIS API key not configured")

    @retry(
        stop=stop_after_attempt(settings.MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type((httpx.TransportError, ExternalServiceError)),
        reraise=True,
    )
    async def _request(
        self,
        url: str,
        params: Dict[str, Any],
        timeout: float = settings.REQUEST_TIMEOUT,
    ) -> Optional[Dict[str, Any]]:
        """Make authenticated GET request to 2GIS API"""

        if not self.api_key:
            logger.error("2GIS API key not configured")
            return None

        params = {**params, "key": self.api_key}

        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, params=params)
            except httpx.TimeoutException:
                logger.error(f"2GIS request timeout: {url}")
                raise

            if response.status_code == 200:
                return response.json()
            if response.status_code == 429:
                logger.warning("2GIS rate limit exceeded")
                raise ExternalServiceError("2GIS rate limit exceeded", status_code=429)

            logger.error(f"2GIS API error: {response.status_code} {response.text[:200]}")
            return None

    async def search_places(
        self,
        query: str,
        region_id: str,
        limit: int = 1,
    ) -> List[Dict[str, Any]]:
        """Search the catalog by name inside one region, best match first"""

        params = {
            "q": query,
            "region_id": region_id,
            "type": self.SEARCH_TYPES,
            "fields": "items.point,items.address",
            "page_size": limit,
        }

        data = await self._request(self.PLACES_URL, params)

        if data and "result" in data and "items" in data["result"]:
            return data["result"]["items"] or []
        return []

    async def reverse_geocode(self, lat: float, lon: float) -> Optional[Dict[str, Any]]:
        """Resolve a point to its address and 2GIS region_id"""

        params = {
            "lat": lat,
            "lon": lon,
            "fields": "items.address,items.region_id",
            "page_size": 1,
        }

        data = await self._request(self.GEOCODER_URL, params)

        if data and "result" in data and "items" in data["result"]:
            items = data["result"]["items"]
            if items:
                item = items[0]
                region_id = item.get("region_id")
                return {
                    "address": item.get("full_name") or item.get("address_name"),
                    "region_id": str(region_id) if region_id is not None else None,
                }

        return None


twogis_client = TwoGISClient()
