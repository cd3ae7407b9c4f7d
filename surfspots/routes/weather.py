from fastapi import APIRouter, Depends

from ..cache import WeatherCache
from ..deps import get_marine_fetcher, get_weather_cache
from ..exceptions import ValidationError
from ..security import validate_coordinates

router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("")
async def weather_for_coordinate(
    lat: str | None = None,
    lon: str | None = None,
    cache: WeatherCache = Depends(get_weather_cache),
    fetch=Depends(get_marine_fetcher),
):
    """
    Marine forecast for a coordinate, served from cache while fresh.

    The cache key is the coordinate text exactly as the client sent it.
    """
    if not lat or not lon:
        raise ValidationError("Missing latitude or longitude")
    validate_coordinates(lat, lon)
    return await cache.get_or_fetch(lat, lon, fetch)
