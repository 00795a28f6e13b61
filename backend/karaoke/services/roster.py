"""Participant roster: membership of users in a session."""
import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import InvalidStateError, NotFoundError, PermissionDeniedError
from karaoke.models.session import Session, Participant
from karaoke.models.user import User
from karaoke.services.change_feed import ChangeEvent, ChangeFeed, INSERT, DELETE

logger = logging.getLogger(__name__)

TABLE = "session_participants"


class ParticipantRoster:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def _find(self, session_id: UUID, user_id: UUID) -> Optional[Participant]:
        result = await self.db.execute(
            select(Participant).where(
                Participant.session_id == session_id,
                Participant.user_id == user_id,
            )
        )
        return result.scalars().first()

    async def join(self, session_id: UUID, user_id: UUID, invited_by: Optional[UUID] = None) -> Participant:
        """Idempotent: an existing membership is returned untouched and nothing is emitted."""
        session = await self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_active:
            raise InvalidStateError("This session has ended")

        existing = await self._find(session_id, user_id)
        if existing:
            return existing

        participant = Participant(session_id=session_id, user_id=user_id, invited_by=invited_by)
        self.db.add(participant)
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent join for the same pair won; theirs is the row
            await self.db.rollback()
            existing = await self._find(session_id, user_id)
            if existing is None:
                raise
            return existing
        await self.db.refresh(participant)

        logger.info(f"User {user_id} joined session {session_id}")
        await self.feed.emit(TABLE, INSERT, session_id, new=participant)
        return participant

    async def leave(self, session_id: UUID, user_id: UUID) -> bool:
        participant = await self._find(session_id, user_id)
        if participant is None:
            return False
        await self.db.delete(participant)
        await self.db.commit()

        logger.info(f"User {user_id} left session {session_id}")
        await self.feed.emit(TABLE, DELETE, session_id, old=participant)
        return True

    async def is_member(self, session_id: UUID, user_id: UUID) -> bool:
        return await self._find(session_id, user_id) is not None

    async def require_member(self, session_id: UUID, user_id: UUID):
        if not await self.is_member(session_id, user_id):
            raise PermissionDeniedError("Join the session first")

    async def count(self, session_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Participant).where(Participant.session_id == session_id)
        )
        return result.scalar_one()

    async def list(self, session_id: UUID) -> List[User]:
        """Users in the session, in join order."""
        result = await self.db.execute(
            select(User)
            .join(Participant, Participant.user_id == User.id)
            .where(Participant.session_id == session_id)
            .order_by(Participant.joined_at.asc(), Participant.id.asc())
        )
        return list(result.scalars().all())


class RosterView:
    """Live roster read model fed by participant change events.

    Insert events for a user already in the snapshot are ignored, so the
    initial fetch and overlapping notifications never produce duplicates.
    Database sessions are opened per load or lookup and closed straight after.
    """

    def __init__(self, session_id: UUID, feed: ChangeFeed, session_factory: async_sessionmaker):
        self.session_id = str(session_id)
        self.feed = feed
        self.session_factory = session_factory
        self._users: Dict[str, User] = {}

    @property
    def users(self) -> List[User]:
        return list(self._users.values())

    async def load(self) -> List[User]:
        async with self.session_factory() as db:
            users = await ParticipantRoster(db, self.feed).list(UUID(self.session_id))
        self._users = {str(u.id): u for u in users}
        return self.users

    async def apply(self, event: ChangeEvent) -> bool:
        """Patch the snapshot. Returns True if it changed."""
        if event.table != TABLE or event.session_id != self.session_id:
            return False
        user_id = event.record.get("user_id")
        if not user_id:
            return False

        if event.event_type == INSERT:
            if user_id in self._users:
                return False
            async with self.session_factory() as db:
                user = await db.get(User, UUID(user_id))
            if user is None:
                logger.warning(f"Participant event for unknown user {user_id}")
                return False
            self._users[user_id] = user
            return True

        if event.event_type == DELETE:
            return self._users.pop(user_id, None) is not None

        return False
