import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import require_user
from ..cache import WeatherCache
from ..db import get_session
from ..deps import get_marine_fetcher, get_weather_cache
from ..exceptions import NotFoundError, UpstreamError, ValidationError
from ..models import SurfSpot, User
from ..security import validate_coordinates
from ..weather import daily_summary, slice_hourly

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/spots", tags=["spots"])

EARTH_RADIUS_KM = 6371.0
MAX_NEAR_LIMIT = 50


class SpotCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    latitude: Optional[float | str] = None
    longitude: Optional[float | str] = None
    country: Optional[str] = None
    region: Optional[str] = None


def spot_dict(spot: SurfSpot) -> dict:
    return {
        "id": spot.id,
        "name": spot.name,
        "description": spot.description,
        "latitude": spot.latitude,
        "longitude": spot.longitude,
        "country": spot.country,
        "region": spot.region,
        "created_by": spot.created_by,
        "source": spot.source,
        "created_at": spot.created_at,
    }


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lon2 - lon1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


async def get_spot_or_404(session: AsyncSession, spot_id: int) -> SurfSpot:
    spot = await session.get(SurfSpot, spot_id)
    if spot is None:
        raise NotFoundError("Spot not found")
    return spot


@router.get("")
async def list_spots(
    q: str | None = None,
    region: str | None = None,
    session: AsyncSession = Depends(get_session),
):
    stmt = select(SurfSpot)
    if q:
        pattern = f"%{q.lower()}%"
        stmt = stmt.where(or_(
            func.lower(SurfSpot.name).like(pattern),
            func.lower(SurfSpot.description).like(pattern),
        ))
    if region:
        stmt = stmt.where(func.lower(SurfSpot.region) == region.lower())
    rows = (await session.execute(stmt.order_by(SurfSpot.name))).scalars().all()
    return [spot_dict(r) for r in rows]


@router.get("/near")
async def near_spots(
    lat: str | None = None,
    lng: str | None = None,
    limit: int = 6,
    session: AsyncSession = Depends(get_session),
):
    lat_f, lng_f = validate_coordinates(lat, lng)
    if not 1 <= limit <= MAX_NEAR_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_NEAR_LIMIT}")

    rows = (await session.execute(select(SurfSpot))).scalars().all()
    ranked = sorted(
        ((haversine_km(lat_f, lng_f, r.latitude, r.longitude), r) for r in rows),
        key=lambda pair: pair[0],
    )
    return [
        {**spot_dict(r), "distance_km": round(d, 1)}
        for d, r in ranked[:limit]
    ]


@router.get("/{spot_id}")
async def spot_detail(
    spot_id: int,
    session: AsyncSession = Depends(get_session),
    cache: WeatherCache = Depends(get_weather_cache),
    fetch=Depends(get_marine_fetcher),
):
    spot = await get_spot_or_404(session, spot_id)

    weather = forecast = None
    try:
        weather = await cache.get_or_fetch(spot.latitude, spot.longitude, fetch)
    except UpstreamError as e:
        logger.warning("serving spot %s without weather: %s", spot_id, e.message)
    if weather is not None:
        forecast = {"hourly": slice_hourly(weather), "daily": daily_summary(weather)}

    return {"spot": spot_dict(spot), "weather": weather, "forecast": forecast}


@router.post("", status_code=201)
async def create_spot(
    body: SpotCreate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    if not body.name or not body.name.strip():
        raise ValidationError("name, latitude, and longitude are required")
    if body.latitude is None or body.longitude is None:
        raise ValidationError("name, latitude, and longitude are required")
    latitude, longitude = validate_coordinates(body.latitude, body.longitude)

    spot = SurfSpot(
        name=body.name.strip(),
        description=body.description or None,
        latitude=latitude,
        longitude=longitude,
        country=body.country or None,
        region=body.region or None,
        created_by=user.user_id,
        source="user",
    )
    session.add(spot)
    await session.commit()
    await session.refresh(spot)
    logger.info("user %s created spot %s", user.username, spot.id)
    return spot_dict(spot)
