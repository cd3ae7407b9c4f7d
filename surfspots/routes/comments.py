from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import ensure_owner, require_user
from ..db import get_session
from ..exceptions import NotFoundError, ValidationError
from ..models import Comment, Post, User

router = APIRouter(prefix="/api/comments", tags=["comments"])


class CommentCreate(BaseModel):
    post_id: Optional[int] = None
    content: Optional[str] = None


class CommentUpdate(BaseModel):
    content: Optional[str] = None


def comment_dict(comment: Comment, username: str) -> dict:
    return {
        "comment_id": comment.comment_id,
        "post_id": comment.post_id,
        "user_id": comment.user_id,
        "content": comment.content,
        "created_at": comment.created_at,
        "username": username,
    }


def _clean_content(content: Optional[str]) -> str:
    if not content or not content.strip():
        raise ValidationError("Content required")
    return content.strip()


async def get_comment_or_404(session: AsyncSession, comment_id: int) -> Comment:
    comment = await session.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


@router.get("/{post_id}")
async def list_comments(post_id: int, session: AsyncSession = Depends(get_session)):
    rows = (
        await session.execute(
            select(Comment, User.username)
            .join(User, Comment.user_id == User.user_id)
            .where(Comment.post_id == post_id)
            .order_by(Comment.created_at, Comment.comment_id)
        )
    ).all()
    return [comment_dict(c, username) for c, username in rows]


@router.post("", status_code=201)
async def create_comment(
    body: CommentCreate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    content = _clean_content(body.content)
    if body.post_id is None:
        raise ValidationError("post_id is required")
    if await session.get(Post, body.post_id) is None:
        raise NotFoundError("Post not found")

    comment = Comment(post_id=body.post_id, user_id=user.user_id, content=content)
    session.add(comment)
    await session.commit()
    await session.refresh(comment)
    return comment_dict(comment, user.username)


@router.put("/{comment_id}")
async def update_comment(
    comment_id: int,
    body: CommentUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    comment = await get_comment_or_404(session, comment_id)
    ensure_owner(comment.user_id, user)
    comment.content = _clean_content(body.content)
    await session.commit()
    return comment_dict(comment, user.username)


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: int,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    comment = await get_comment_or_404(session, comment_id)
    ensure_owner(comment.user_id, user)
    await session.delete(comment)
    await session.commit()
    return {"ok": True}
