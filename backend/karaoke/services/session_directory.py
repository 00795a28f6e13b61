"""Session directory: create, resolve by code, close."""
import logging
import random
import string
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.config import settings
from karaoke.core.errors import ConflictError, InvalidArgumentError, NotFoundError
from karaoke.models.session import Session, Participant
from karaoke.services.change_feed import ChangeFeed, INSERT, UPDATE
from karaoke.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)

# Exclude ambiguous characters: O, I, L, 0, 1
CODE_LETTERS = "".join(c for c in string.ascii_uppercase if c not in "OIL")
CODE_DIGITS = "".join(c for c in string.digits if c not in "01")


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def generate_code(length: int = 8) -> str:
    """Half letters then half digits, e.g. ABCD2345."""
    letters = length // 2
    return (
        "".join(random.choices(CODE_LETTERS, k=letters))
        + "".join(random.choices(CODE_DIGITS, k=length - letters))
    )


def _is_code_collision(error: IntegrityError) -> bool:
    message = str(error.orig)
    return "ix_sessions_active_code" in message or "sessions.code" in message


class SessionDirectory:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def _generate_unique_code(self) -> str:
        for _ in range(settings.SESSION_CODE_MAX_ATTEMPTS):
            code = generate_code(settings.SESSION_CODE_LENGTH)
            result = await self.db.execute(
                select(Session.id).where(Session.code == code, Session.is_active == True)  # noqa: E712
            )
            if result.first() is None:
                return code
        raise ConflictError("Could not generate a unique session code, please try again")

    async def create_session(self, name: str, host_user_id: UUID) -> Session:
        """Create an active session and enroll the host as its first participant."""
        name = (name or "").strip()
        if not name:
            raise InvalidArgumentError("Session name is required")

        code = await self._generate_unique_code()
        session = Session(name=name, code=code, host_id=host_user_id)
        self.db.add(session)
        try:
            # The participant row references the session, so it must exist first
            await self.db.flush()
            host = Participant(session_id=session.id, user_id=host_user_id)
            self.db.add(host)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if not _is_code_collision(e):
                raise
            # Lost a race for the same code against another creator
            logger.warning(f"Session code collision on insert: {code}")
            raise ConflictError("Could not generate a unique session code, please try again")
        await self.db.refresh(session)
        await self.db.refresh(host)

        logger.info(f"Created session {session.id} with code {code}")
        await self.feed.emit("session_participants", INSERT, session.id, new=host)
        return session

    async def resolve_session(self, code: str) -> Session:
        """Case-insensitive lookup among active sessions.

        Inactive and unknown codes are reported the same way.
        """
        normalized = normalize_code(code)
        if not normalized:
            raise InvalidArgumentError("Session code is required")
        result = await self.db.execute(
            select(Session).where(Session.code == normalized, Session.is_active == True)  # noqa: E712
        )
        session = result.scalars().first()
        if session is None:
            raise NotFoundError("Invalid session code")
        return session

    async def get(self, session_id: UUID) -> Optional[Session]:
        return await self.db.get(Session, session_id)

    async def close_session(self, session_id: UUID) -> Session:
        session = await self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_active:
            return session
        session.is_active = False
        session.updated_at = utcnow()
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)

        logger.info(f"Closed session {session_id}")
        await self.feed.emit("sessions", UPDATE, session.id, new=session)
        return session
