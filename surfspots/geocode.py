"""
Place-name search against the Open-Meteo geocoding API.
"""
import httpx
import logging
from typing import Optional, Dict, List, Any
from .config import settings
from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


def normalize_place(place: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": place.get("id"),
        "name": place.get("name"),
        "region": place.get("admin1") or "",
        "country": place.get("country") or "",
        "latitude": place.get("latitude"),
        "longitude": place.get("longitude"),
        "timezone": place.get("timezone") or "",
    }


async def search_places(query: str, client: Optional[httpx.AsyncClient] = None) -> List[Dict[str, Any]]:
    """
    Look up places matching a free-text name.

    Raises:
        UpstreamError: If the geocoding service is unreachable or returns non-2xx
    """
    params = {"name": query, "count": 10, "language": "en", "format": "json"}
    try:
        if client is not None:
            data = await _get_json(client, params)
        else:
            async with httpx.AsyncClient(timeout=settings.WEATHER_API_TIMEOUT) as owned:
                data = await _get_json(owned, params)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("geocode fetch failed for %r: %s", query, e)
        raise UpstreamError("Geocoding failed", service="geocoding") from e
    return [normalize_place(p) for p in data.get("results") or []]


async def _get_json(client: httpx.AsyncClient, params: Dict[str, Any]) -> Dict[str, Any]:
    r = await client.get(settings.GEOCODE_API_URL, params=params)
    r.raise_for_status()
    return r.json()
