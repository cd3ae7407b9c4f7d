"""
Session store: maps opaque bearer tokens to usernames.

Two backends share the ``SessionStore`` interface. ``DatabaseSessionStore``
persists sessions in the ``sessions`` table and survives restarts;
``InMemorySessionStore`` keeps them in a dict and loses them on restart.
Route handlers receive a store through the ``get_session_store`` dependency.
"""
import abc
import datetime
import logging
import re
import secrets
import time
from typing import Callable, Dict, Optional, Tuple

from sqlalchemy import select, insert, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import SessionStoreError
from .models import UserSession

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits
TOKEN_RE = re.compile(r"^[0-9a-f]{64}$")


def new_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def is_well_formed(token: Optional[str]) -> bool:
    return bool(token) and TOKEN_RE.match(token) is not None


class SessionStore(abc.ABC):
    """Issue, validate and revoke session tokens."""

    @abc.abstractmethod
    async def create(self, username: str) -> str:
        """Start a session for ``username`` and return its token."""

    @abc.abstractmethod
    async def resolve(self, token: Optional[str]) -> Optional[str]:
        """Username owning ``token``, or None if it is unknown, malformed or expired."""

    @abc.abstractmethod
    async def revoke(self, token: str) -> bool:
        """Delete the session. Returns True if it was active."""


class InMemorySessionStore(SessionStore):
    """Volatile store for tests and single-process development."""

    def __init__(self, max_age_seconds: int = 0, clock: Callable[[], float] = time.monotonic):
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._sessions: Dict[str, Tuple[str, float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _expired(self, created: float) -> bool:
        return bool(self.max_age_seconds) and self._clock() - created >= self.max_age_seconds

    def _purge_expired(self) -> None:
        if not self.max_age_seconds:
            return
        for token in [t for t, (_, created) in self._sessions.items() if self._expired(created)]:
            del self._sessions[token]

    async def create(self, username: str) -> str:
        self._purge_expired()
        token = new_token()
        if token in self._sessions:
            raise SessionStoreError("Session token collision")
        self._sessions[token] = (username, self._clock())
        return token

    async def resolve(self, token: Optional[str]) -> Optional[str]:
        if not is_well_formed(token):
            return None
        entry = self._sessions.get(token)
        if entry is None or self._expired(entry[1]):
            return None
        return entry[0]

    async def revoke(self, token: str) -> bool:
        entry = self._sessions.pop(token, None)
        return entry is not None and not self._expired(entry[1])


class DatabaseSessionStore(SessionStore):
    """Durable store backed by the ``sessions`` table."""

    def __init__(self, db: AsyncSession, max_age_seconds: int = 0):
        self.db = db
        self.max_age_seconds = max_age_seconds

    async def create(self, username: str) -> str:
        token = new_token()
        try:
            await self.db.execute(insert(UserSession).values(token=token, username=username))
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise SessionStoreError("Could not persist session") from e
        return token

    async def _lookup(self, token: str):
        return (
            await self.db.execute(
                select(UserSession.username, UserSession.created_at).where(UserSession.token == token)
            )
        ).first()

    async def resolve(self, token: Optional[str]) -> Optional[str]:
        if not is_well_formed(token):
            return None
        row = await self._lookup(token)
        if row is None:
            return None
        if self.max_age_seconds and _expired(row.created_at, self.max_age_seconds):
            return None
        return row.username

    async def revoke(self, token: str) -> bool:
        if not is_well_formed(token):
            return False
        row = await self._lookup(token)
        if row is None:
            return False
        was_active = not (self.max_age_seconds and _expired(row.created_at, self.max_age_seconds))
        await self.db.execute(delete(UserSession).where(UserSession.token == token))
        await self.db.commit()
        return was_active


def _expired(created_at: Optional[datetime.datetime], max_age_seconds: int) -> bool:
    if created_at is None:
        return False
    # SQLite hands back naive timestamps; they are UTC.
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=datetime.timezone.utc)
    age = (datetime.datetime.now(datetime.timezone.utc) - created_at).total_seconds()
    return age >= max_age_seconds
