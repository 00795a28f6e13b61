"""Challenge ledger: one participant dares another to sing a song."""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from karaoke.models.challenge import Challenge, ChallengeStatus
from karaoke.models.session import Session
from karaoke.models.song import Song, QueueItem
from karaoke.services.change_feed import ChangeFeed, INSERT, UPDATE
from karaoke.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)

TABLE = "challenges"


class ChallengeLedger:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def get(self, challenge_id: UUID) -> Challenge:
        challenge = await self.db.get(Challenge, challenge_id)
        if challenge is None:
            raise NotFoundError("Challenge not found")
        return challenge

    async def create(
        self,
        session_id: UUID,
        challenger_id: UUID,
        challenged_id: UUID,
        song_id: UUID,
        message: Optional[str] = None,
    ) -> Challenge:
        if challenger_id == challenged_id:
            raise InvalidArgumentError("You can't challenge yourself")
        session = await self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_active:
            raise InvalidStateError("This session has ended")
        if await self.db.get(Song, song_id) is None:
            raise NotFoundError("Song not found")

        challenge = Challenge(
            session_id=session_id,
            challenger_id=challenger_id,
            challenged_id=challenged_id,
            song_id=song_id,
            message=(message or "").strip() or None,
        )
        self.db.add(challenge)
        await self.db.commit()
        await self.db.refresh(challenge)

        logger.info(f"Challenge {challenge.id}: {challenger_id} -> {challenged_id} in session {session_id}")
        await self.feed.emit(TABLE, INSERT, session_id, new=challenge)
        return challenge

    async def _transition(self, challenge: Challenge, expected: ChallengeStatus, **values) -> Challenge:
        """Compare-and-set on status so two responders can't both win."""
        result = await self.db.execute(
            update(Challenge)
            .where(Challenge.id == challenge.id, Challenge.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(challenge)
        if result.rowcount != 1:
            raise InvalidStateError(f"Challenge is already {challenge.status.value}")

        await self.feed.emit(TABLE, UPDATE, challenge.session_id, new=challenge)
        return challenge

    async def respond(self, challenge_id: UUID, accept: bool) -> Challenge:
        """pending -> accepted | declined"""
        challenge = await self.get(challenge_id)
        if challenge.status != ChallengeStatus.PENDING:
            raise InvalidStateError(f"Challenge is already {challenge.status.value}")

        status = ChallengeStatus.ACCEPTED if accept else ChallengeStatus.DECLINED
        challenge = await self._transition(
            challenge,
            ChallengeStatus.PENDING,
            status=status,
            responded_at=utcnow(),
        )
        logger.info(f"Challenge {challenge_id} {status.value}")
        return challenge

    async def complete(self, challenge_id: UUID, queue_item_id: UUID) -> Challenge:
        """accepted -> completed, linking the performance's queue item."""
        challenge = await self.get(challenge_id)
        if challenge.status != ChallengeStatus.ACCEPTED:
            raise InvalidStateError(f"Challenge is {challenge.status.value}, not accepted")

        item = await self.db.get(QueueItem, queue_item_id)
        if item is None:
            raise NotFoundError("Queue item not found")
        if item.session_id != challenge.session_id:
            raise InvalidArgumentError("Queue item belongs to another session")

        challenge = await self._transition(
            challenge,
            ChallengeStatus.ACCEPTED,
            status=ChallengeStatus.COMPLETED,
            completed_at=utcnow(),
            queue_item_id=queue_item_id,
        )

        item.is_challenge = True
        item.challenged_user_id = challenge.challenged_id
        item.challenge_accepted = True
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)
        await self.feed.emit("song_queue", UPDATE, item.session_id, new=item)

        logger.info(f"Challenge {challenge_id} completed with queue item {queue_item_id}")
        return challenge

    async def list_for_session(self, session_id: UUID, status: Optional[ChallengeStatus] = None) -> List[Challenge]:
        stmt = select(Challenge).where(Challenge.session_id == session_id)
        if status is not None:
            stmt = stmt.where(Challenge.status == status)
        result = await self.db.execute(stmt.order_by(Challenge.created_at.desc()))
        return list(result.scalars().all())

    async def list_pending_for(self, user_id: UUID) -> List[Challenge]:
        result = await self.db.execute(
            select(Challenge)
            .where(Challenge.challenged_id == user_id, Challenge.status == ChallengeStatus.PENDING)
            .order_by(Challenge.created_at.asc())
        )
        return list(result.scalars().all())
