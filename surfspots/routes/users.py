import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Response
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..auth import (
    current_username,
    get_session_store,
    get_user_by_username,
    optional_user,
    require_user,
)
from ..config import settings
from ..db import get_session
from ..exceptions import ConflictError, ValidationError
from ..models import User
from ..security import (
    hash_password,
    validate_email,
    validate_password,
    validate_username,
    verify_password,
)
from ..sessions import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


# ---------- Request schemas ----------

class RegisterRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    bio: Optional[str] = None
    profile_pic_url: Optional[str] = None


def profile_dict(user: User) -> dict:
    return {
        "user_id": user.user_id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "username": user.username,
        "email": user.email,
        "bio": user.bio,
        "profile_pic_url": user.profile_pic_url,
    }


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        max_age=settings.SESSION_MAX_AGE or None,
    )


# ---------- Account ----------

@router.post("/create")
async def create_user(body: RegisterRequest, session: AsyncSession = Depends(get_session)):
    required = ("first_name", "last_name", "username", "email", "password")
    if not all(getattr(body, f) for f in required):
        raise ValidationError("Missing required fields")
    validate_username(body.username)
    validate_password(body.password)
    validate_email(body.email)

    session.add(User(
        first_name=body.first_name,
        last_name=body.last_name,
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
    ))
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Username or email already exists")

    logger.info("registered user %s", body.username)
    return {"ok": True, "message": "User created successfully. Please log in."}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
    store: SessionStore = Depends(get_session_store),
):
    if not body.username or not body.password:
        raise ValidationError("Missing username or password")

    user = await get_user_by_username(session, body.username)
    if user is None or not verify_password(user.password_hash, body.password):
        logger.info("failed login for %s", body.username)
        raise ValidationError("Invalid credentials")

    token = await store.create(user.username)
    _set_token_cookie(response, token)
    logger.info("user %s logged in", user.username)
    return {"ok": True, "message": "Logged in successfully"}


@router.post("/logout")
async def logout(
    response: Response,
    token: Optional[str] = Cookie(default=None, alias=settings.SESSION_COOKIE_NAME),
    store: SessionStore = Depends(get_session_store),
):
    if not token:
        raise ValidationError("Already logged out")

    was_active = await store.revoke(token)
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
    )
    if was_active:
        return {"ok": True, "message": "Logged out successfully"}
    return {"ok": True, "message": "Session already ended"}


@router.get("/me")
async def me(username: Optional[str] = Depends(current_username)):
    if username is None:
        return {"user": None}
    return {"user": {"username": username}}


# ---------- Profile ----------

@router.get("/api/users/me")
async def get_profile(user: Optional[User] = Depends(optional_user)):
    if user is None:
        return {"user": None}
    return {"user": profile_dict(user)}


@router.put("/api/users/me")
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    changes = body.model_dump(exclude_unset=True)
    if "email" in changes:
        validate_email(changes["email"])
    for field in ("first_name", "last_name"):
        if field in changes and not changes[field]:
            raise ValidationError(f"{field} cannot be empty")

    for field, value in changes.items():
        setattr(user, field, value)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise ConflictError("Email already in use")

    return {"ok": True, "user": profile_dict(user)}
