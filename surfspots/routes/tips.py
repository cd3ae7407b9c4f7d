from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import ensure_owner, require_user
from ..db import get_session
from ..exceptions import NotFoundError, ValidationError
from ..models import SpotTip, SurfSpot, User

router = APIRouter(prefix="/api/spot-tips", tags=["spot-tips"])


class TipCreate(BaseModel):
    spot_id: Optional[int] = None
    content: Optional[str] = None


class TipUpdate(BaseModel):
    content: Optional[str] = None


def tip_dict(tip: SpotTip, username: str) -> dict:
    return {
        "tip_id": tip.tip_id,
        "spot_id": tip.spot_id,
        "user_id": tip.user_id,
        "content": tip.content,
        "created_at": tip.created_at,
        "username": username,
    }


async def get_tip_or_404(session: AsyncSession, tip_id: int) -> SpotTip:
    tip = await session.get(SpotTip, tip_id)
    if tip is None:
        raise NotFoundError("Tip not found")
    return tip


@router.get("/{spot_id}")
async def list_tips(spot_id: int, session: AsyncSession = Depends(get_session)):
    """All tips for a surf spot, oldest first."""
    rows = (
        await session.execute(
            select(SpotTip, User.username)
            .join(User, SpotTip.user_id == User.user_id)
            .where(SpotTip.spot_id == spot_id)
            .order_by(SpotTip.created_at, SpotTip.tip_id)
        )
    ).all()
    return [tip_dict(t, username) for t, username in rows]


@router.post("", status_code=201)
async def create_tip(
    body: TipCreate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    if body.spot_id is None or not body.content or not body.content.strip():
        raise ValidationError("spot_id and content are required")
    if await session.get(SurfSpot, body.spot_id) is None:
        raise NotFoundError("Spot not found")

    tip = SpotTip(spot_id=body.spot_id, user_id=user.user_id, content=body.content.strip())
    session.add(tip)
    await session.commit()
    await session.refresh(tip)
    return tip_dict(tip, user.username)


@router.put("/{tip_id}")
async def update_tip(
    tip_id: int,
    body: TipUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    tip = await get_tip_or_404(session, tip_id)
    ensure_owner(tip.user_id, user)
    if not body.content or not body.content.strip():
        raise ValidationError("content is required")
    tip.content = body.content.strip()
    await session.commit()
    return tip_dict(tip, user.username)


@router.delete("/{tip_id}")
async def delete_tip(
    tip_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    """Only the author of a tip can delete it."""
    tip = await get_tip_or_404(session, tip_id)
    ensure_owner(tip.user_id, user)
    await session.delete(tip)
    await session.commit()
    return {"ok": True}
