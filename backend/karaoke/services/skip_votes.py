"""
Skip-vote tally.

Votes toggle: a second call from the same user retracts. The skip signal fires
only on the cast that carries the tally across votes >= participants / 2, using
the roster size at that moment. Later votes past the threshold don't fire it
again, and it is not re-evaluated when the roster changes.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from karaoke.models.session import Participant, Session
from karaoke.models.song import QueueItem, QueueStatus
from karaoke.models.vote import SkipVote
from karaoke.schemas.queue import SkipTally
from karaoke.services.change_feed import ChangeFeed, INSERT, DELETE

logger = logging.getLogger(__name__)

TABLE = "skip_votes"


@dataclass
class VoteResult:
    voted: bool
    vote_count: int
    participant_count: int
    skip_triggered: bool = False


def threshold_reached(vote_count: int, participant_count: int) -> bool:
    """Majority check; exactly half the roster counts."""
    return vote_count * 2 >= participant_count


class SkipVoteTally:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def _find(self, queue_item_id: UUID, user_id: UUID) -> Optional[SkipVote]:
        result = await self.db.execute(
            select(SkipVote).where(SkipVote.queue_item_id == queue_item_id, SkipVote.user_id == user_id)
        )
        return result.scalars().first()

    async def _vote_count(self, queue_item_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(SkipVote).where(SkipVote.queue_item_id == queue_item_id)
        )
        return result.scalar_one()

    async def _participant_count(self, session_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Participant).where(Participant.session_id == session_id)
        )
        return result.scalar_one()

    async def cast_or_retract(self, queue_item_id: UUID, user_id: UUID, session_id: UUID) -> VoteResult:
        item = await self.db.get(QueueItem, queue_item_id)
        if item is None:
            raise NotFoundError("Queue item not found")
        if item.session_id != session_id:
            raise InvalidArgumentError("Queue item belongs to another session")
        session = await self.db.get(Session, session_id)
        if session is None or not session.is_active:
            raise InvalidStateError("This session has ended")

        existing = await self._find(queue_item_id, user_id)
        if existing:
            await self.db.delete(existing)
            await self.db.commit()
            logger.info(f"User {user_id} retracted skip vote on {queue_item_id}")
            await self.feed.emit(TABLE, DELETE, session_id, old=existing)
            return VoteResult(
                voted=False,
                vote_count=await self._vote_count(queue_item_id),
                participant_count=await self._participant_count(session_id),
            )

        if item.status != QueueStatus.PLAYING:
            raise InvalidStateError("You can only vote to skip the song that is playing")

        vote = SkipVote(queue_item_id=queue_item_id, user_id=user_id, session_id=session_id)
        self.db.add(vote)
        try:
            await self.db.commit()
        except IntegrityError:
            # Double submit from the same user; the first insert stands
            await self.db.rollback()
            return VoteResult(
                voted=True,
                vote_count=await self._vote_count(queue_item_id),
                participant_count=await self._participant_count(session_id),
            )
        await self.db.refresh(vote)
        await self.feed.emit(TABLE, INSERT, session_id, new=vote)

        vote_count = await self._vote_count(queue_item_id)
        participant_count = await self._participant_count(session_id)
        triggered = (
            threshold_reached(vote_count, participant_count)
            and not threshold_reached(vote_count - 1, participant_count)
        )
        logger.info(
            f"Skip vote on {queue_item_id}: {vote_count}/{participant_count}"
            + (" - threshold reached" if triggered else "")
        )
        return VoteResult(
            voted=True,
            vote_count=vote_count,
            participant_count=participant_count,
            skip_triggered=triggered,
        )

    async def tally(self, queue_item_id: UUID) -> SkipTally:
        """Current counts, recomputed from rows."""
        item = await self.db.get(QueueItem, queue_item_id)
        if item is None:
            raise NotFoundError("Queue item not found")
        return SkipTally(
            vote_count=await self._vote_count(queue_item_id),
            participant_count=await self._participant_count(item.session_id),
        )

    async def has_voted(self, queue_item_id: UUID, user_id: UUID) -> bool:
        return await self._find(queue_item_id, user_id) is not None
