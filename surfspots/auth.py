"""
Authentication and ownership dependencies for route handlers.
"""
import logging
from typing import Optional

from fastapi import Cookie, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .db import get_session
from .exceptions import AuthenticationError, AuthorizationError
from .models import User
from .sessions import DatabaseSessionStore, SessionStore

logger = logging.getLogger(__name__)


async def get_session_store(
    request: Request, db: AsyncSession = Depends(get_session)
) -> SessionStore:
    """The configured session store: the app-wide in-memory one, or a per-request DB store."""
    if settings.SESSION_BACKEND == "memory":
        return request.app.state.memory_sessions
    return DatabaseSessionStore(db, max_age_seconds=settings.SESSION_MAX_AGE)


async def current_username(
    token: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    store: SessionStore = Depends(get_session_store),
) -> Optional[str]:
    if not token:
        return None
    return await store.resolve(token)


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    return (
        await db.execute(select(User).where(User.username == username))
    ).scalars().first()


async def optional_user(
    username: Optional[str] = Depends(current_username),
    db: AsyncSession = Depends(get_session),
) -> Optional[User]:
    if username is None:
        return None
    return await get_user_by_username(db, username)


async def require_user(user: Optional[User] = Depends(optional_user)) -> User:
    if user is None:
        raise AuthenticationError("Not logged in")
    return user


def ensure_owner(owner_id: Optional[int], user: User) -> None:
    """Only the creator of a resource may change it."""
    if owner_id != user.user_id:
        logger.info("user %s denied on resource owned by %s", user.username, owner_id)
        raise AuthorizationError("You can only modify your own content")
