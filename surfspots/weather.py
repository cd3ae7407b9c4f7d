"""
Marine weather fetching and processing module.

Integrates with the Open-Meteo marine API to fetch wave and swell
forecasts for a coordinate, and reshapes the raw hourly/daily arrays
into per-hour rows for spot pages.
"""
import httpx
import asyncio
import logging
from typing import Optional, Dict, List, Any
from .config import settings
from .exceptions import UpstreamError

logger = logging.getLogger(__name__)

FEET_PER_METER: float = 3.28084

HOURLY_FIELDS: List[str] = [
    "wave_height",
    "wave_direction",
    "wave_period",
    "wind_wave_height",
    "wind_wave_direction",
    "wind_wave_period",
    "swell_wave_height",
    "swell_wave_direction",
    "swell_wave_period",
    "sea_surface_temperature",
]
DAILY_FIELDS: List[str] = ["wave_height_max", "wind_wave_height_max", "swell_wave_height_max"]

# Semaphore to limit concurrent API requests (prevents rate limiting)
_SEM: asyncio.Semaphore = asyncio.Semaphore(settings.MAX_CONCURRENT_WEATHER_REQUESTS)


async def fetch_marine(lat, lon, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Fetch the marine forecast for a coordinate from Open-Meteo.

    Args:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees
        client: Optional client to reuse; a short-lived one is opened otherwise

    Returns:
        Dict containing the raw hourly and daily marine data

    Raises:
        UpstreamError: If the request fails, times out or returns non-2xx
    """
    params = {
        "latitude": lat,
        "longitude": lon,
        "hourly": ",".join(HOURLY_FIELDS),
        "daily": ",".join(DAILY_FIELDS),
        "timezone": "auto",
    }
    try:
        async with _SEM:
            if client is not None:
                return await _get_json(client, params)
            async with httpx.AsyncClient(timeout=settings.WEATHER_API_TIMEOUT) as owned:
                return await _get_json(owned, params)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("marine weather fetch failed for %s,%s: %s", lat, lon, e)
        raise UpstreamError("Error fetching weather data", service="marine-weather") from e


async def _get_json(client: httpx.AsyncClient, params: Dict[str, Any]) -> Dict[str, Any]:
    r = await client.get(settings.WEATHER_API_URL, params=params)
    r.raise_for_status()
    return r.json()


def meters_to_feet(meters: Optional[float]) -> Optional[float]:
    if meters is None:
        return None
    return round(meters * FEET_PER_METER, 1)


def degrees_to_compass(degrees: Optional[float]) -> Optional[str]:
    """
    Convert a direction in degrees to a 16-point compass label.

    Args:
        degrees: Direction in degrees (any value, wrapped to 0-360)

    Returns:
        Compass label (N, NNE, NE, etc.), or None when degrees is None
    """
    if degrees is None:
        return None

    directions: List[str] = [
        "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
        "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW"
    ]
    index: int = round((degrees % 360) / 22.5) % 16
    return directions[index]


def _column(block: Dict[str, List], name: str, n: int) -> List[Any]:
    values = block.get(name) or []
    return list(values[:n]) + [None] * max(0, n - len(values))


def slice_hourly(payload: Dict[str, Any], hours: int = 24) -> List[Dict[str, Any]]:
    """
    Extract the first ``hours`` rows of the hourly marine forecast.

    Args:
        payload: Raw API response from Open-Meteo marine
        hours: Maximum number of rows to return

    Returns:
        List of dicts, one per hour, with heights in metres and feet
    """
    hourly: Dict[str, List] = payload.get("hourly", {}) or {}
    times: List[str] = hourly.get("time", []) or []
    n: int = min(len(times), hours)

    wave_h = _column(hourly, "wave_height", n)
    wave_dir = _column(hourly, "wave_direction", n)
    wave_per = _column(hourly, "wave_period", n)
    wind_h = _column(hourly, "wind_wave_height", n)
    wind_dir = _column(hourly, "wind_wave_direction", n)
    swell_h = _column(hourly, "swell_wave_height", n)
    swell_dir = _column(hourly, "swell_wave_direction", n)
    swell_per = _column(hourly, "swell_wave_period", n)
    sst = _column(hourly, "sea_surface_temperature", n)

    out: List[Dict[str, Any]] = []
    for i in range(n):
        out.append({
            "time": times[i],
            "wave_height_m": wave_h[i],
            "wave_height_ft": meters_to_feet(wave_h[i]),
            "wave_direction": degrees_to_compass(wave_dir[i]),
            "wave_direction_deg": wave_dir[i],
            "wave_period_s": wave_per[i],
            "wind_wave_height_m": wind_h[i],
            "wind_wave_direction": degrees_to_compass(wind_dir[i]),
            "swell_height_m": swell_h[i],
            "swell_height_ft": meters_to_feet(swell_h[i]),
            "swell_direction": degrees_to_compass(swell_dir[i]),
            "swell_period_s": swell_per[i],
            "sea_surface_temp_c": sst[i],
        })
    return out


def daily_summary(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Per-day maximum wave heights, in metres and feet."""
    daily: Dict[str, List] = payload.get("daily", {}) or {}
    days: List[str] = daily.get("time", []) or []
    n = len(days)
    wave_max = _column(daily, "wave_height_max", n)
    wind_max = _column(daily, "wind_wave_height_max", n)
    swell_max = _column(daily, "swell_wave_height_max", n)
    return [
        {
            "date": days[i],
            "wave_height_max_m": wave_max[i],
            "wave_height_max_ft": meters_to_feet(wave_max[i]),
            "wind_wave_height_max_m": wind_max[i],
            "swell_wave_height_max_m": swell_max[i],
        }
        for i in range(n)
    ]
