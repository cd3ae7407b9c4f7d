from fastapi import APIRouter, Depends

from ..deps import get_geocoder
from ..geocode import MIN_QUERY_LENGTH

router = APIRouter(prefix="/api/geocode", tags=["geocode"])


@router.get("")
async def geocode(q: str = "", search=Depends(get_geocoder)):
    query = q.strip()
    if len(query) < MIN_QUERY_LENGTH:
        return {"results": []}
    return {"results": await search(query)}
