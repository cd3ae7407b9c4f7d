import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel
from sqlalchemy import select, insert, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import ensure_owner, require_user
from ..db import get_session
from ..deps import get_image_storage
from ..exceptions import NotFoundError, ValidationError
from ..models import Post, PostLike, SurfSpot, User
from ..storage import ImageStorage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["posts"])


class PostCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    spot_id: Optional[int] = None


class PostUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


def post_dict(post: Post, username: str, likes: int = 0) -> dict:
    return {
        "post_id": post.post_id,
        "title": post.title,
        "content": post.content,
        "image_url": post.image_url,
        "spot_id": post.spot_id,
        "user_id": post.user_id,
        "username": username,
        "like_count": likes,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
    }


def _with_author_and_likes():
    like_count = (
        select(func.count(PostLike.id))
        .where(PostLike.post_id == Post.post_id)
        .correlate(Post)
        .scalar_subquery()
    )
    return select(Post, User.username, like_count).join(User, Post.user_id == User.user_id)


async def get_post_or_404(session: AsyncSession, post_id: int) -> Post:
    post = await session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


async def count_likes(session: AsyncSession, post_id: int) -> int:
    return (
        await session.execute(select(func.count(PostLike.id)).where(PostLike.post_id == post_id))
    ).scalar_one()


@router.get("")
async def list_posts(spot_id: int | None = None, session: AsyncSession = Depends(get_session)):
    stmt = _with_author_and_likes()
    if spot_id is not None:
        stmt = stmt.where(Post.spot_id == spot_id)
    rows = (await session.execute(stmt.order_by(Post.created_at.desc(), Post.post_id.desc()))).all()
    return [post_dict(p, username, likes) for p, username, likes in rows]


@router.get("/{post_id}")
async def get_post(post_id: int, session: AsyncSession = Depends(get_session)):
    row = (await session.execute(_with_author_and_likes().where(Post.post_id == post_id))).first()
    if row is None:
        raise NotFoundError("Post not found")
    post, username, likes = row
    return post_dict(post, username, likes)


@router.post("", status_code=201)
async def create_post(
    body: PostCreate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    if not body.title or not body.title.strip() or not body.content or not body.content.strip():
        raise ValidationError("title and content are required")
    if body.spot_id is not None and await session.get(SurfSpot, body.spot_id) is None:
        raise NotFoundError("Spot not found")

    post = Post(
        title=body.title.strip(),
        content=body.content.strip(),
        spot_id=body.spot_id,
        user_id=user.user_id,
    )
    session.add(post)
    await session.commit()
    await session.refresh(post)
    return post_dict(post, user.username)


@router.put("/{post_id}")
async def update_post(
    post_id: int,
    body: PostUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    post = await get_post_or_404(session, post_id)
    ensure_owner(post.user_id, user)

    if body.title is not None:
        if not body.title.strip():
            raise ValidationError("title cannot be empty")
        post.title = body.title.strip()
    if body.content is not None:
        if not body.content.strip():
            raise ValidationError("content cannot be empty")
        post.content = body.content.strip()
    await session.commit()
    await session.refresh(post)
    return post_dict(post, user.username, await count_likes(session, post_id))


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    post = await get_post_or_404(session, post_id)
    ensure_owner(post.user_id, user)
    await session.delete(post)
    await session.commit()
    return {"ok": True}


@router.post("/{post_id}/image")
async def upload_post_image(
    post_id: int,
    image: UploadFile = File(...),
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    storage: ImageStorage = Depends(get_image_storage),
):
    post = await get_post_or_404(session, post_id)
    ensure_owner(post.user_id, user)

    data = await image.read(storage.max_bytes + 1)
    url = await storage.save(data, image.content_type)
    post.image_url = url
    await session.commit()
    return {"ok": True, "image_url": url}


# ---------- Likes ----------

@router.post("/{post_id}/like")
async def like_post(
    post_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    await get_post_or_404(session, post_id)
    result = {"ok": True}
    try:
        await session.execute(insert(PostLike).values(post_id=post_id, user_id=user.user_id))
        await session.commit()
    except IntegrityError:
        await session.rollback()
        result["note"] = "Already liked"
    result["like_count"] = await count_likes(session, post_id)
    return result


@router.delete("/{post_id}/like")
async def unlike_post(
    post_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    await get_post_or_404(session, post_id)
    await session.execute(
        delete(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == user.user_id)
    )
    await session.commit()
    return {"ok": True, "like_count": await count_likes(session, post_id)}
