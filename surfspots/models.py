"""
SQLAlchemy database models.

Defines tables for accounts, login sessions, surf spots and the
social content (posts, likes, comments, tips) attached to them.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Float,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from .db import Base


class User(Base):
    """
    Registered account.

    Username and email uniqueness is enforced by the database; registration
    relies on the constraint rather than a prior lookup.
    """
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    username = Column(String(20), nullable=False, unique=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=False)
    bio = Column(Text)
    profile_pic_url = Column(String(1024))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserSession(Base):
    """Bearer token issued at login, deleted at logout."""
    __tablename__ = "sessions"

    token = Column(String(64), primary_key=True)
    username = Column(
        String(20),
        ForeignKey("users.username", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SurfSpot(Base):
    __tablename__ = "surf_spots"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    country = Column(String(100))
    region = Column(String(100))
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"))
    source = Column(String(20), default="user")  # seed | user
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Post(Base):
    __tablename__ = "posts"

    post_id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(String(1024))
    spot_id = Column(Integer, ForeignKey("surf_spots.id", ondelete="SET NULL"))
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class PostLike(Base):
    """
    One like per (post, user).

    The unique constraint makes a repeated like a no-op.
    """
    __tablename__ = "post_likes"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.post_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        UniqueConstraint("post_id", "user_id", name="uniq_post_like"),
    )


class Comment(Base):
    __tablename__ = "comments"

    comment_id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.post_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SpotTip(Base):
    __tablename__ = "spot_tips"

    tip_id = Column(Integer, primary_key=True)
    spot_id = Column(Integer, ForeignKey("surf_spots.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
