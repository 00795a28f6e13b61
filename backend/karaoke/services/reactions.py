"""Emoji reactions on queue items. One mutable reaction per user per item."""
import logging
from collections import Counter
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import InvalidArgumentError, InvalidStateError, NotFoundError
from karaoke.models.session import Session
from karaoke.models.song import QueueItem
from karaoke.models.vote import Rating
from karaoke.services.change_feed import ChangeFeed, INSERT, UPDATE

logger = logging.getLogger(__name__)

TABLE = "ratings"

REACTION_EMOJIS = ("🔥", "👏", "❤️", "😂", "🎵", "⭐", "💯", "🎤")


class ReactionService:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    async def get_reaction(self, queue_item_id: UUID, user_id: UUID) -> Optional[Rating]:
        result = await self.db.execute(
            select(Rating).where(Rating.queue_item_id == queue_item_id, Rating.user_id == user_id)
        )
        return result.scalars().first()

    async def set_reaction(self, queue_item_id: UUID, user_id: UUID, emoji: str) -> Rating:
        """Insert-or-update the user's reaction."""
        if emoji not in REACTION_EMOJIS:
            raise InvalidArgumentError("Unsupported reaction")
        item = await self.db.get(QueueItem, queue_item_id)
        if item is None:
            raise NotFoundError("Queue item not found")
        session = await self.db.get(Session, item.session_id)
        if session is None or not session.is_active:
            raise InvalidStateError("This session has ended")

        rating = await self.get_reaction(queue_item_id, user_id)
        event_type = UPDATE
        if rating is None:
            rating = Rating(queue_item_id=queue_item_id, user_id=user_id, emoji=emoji)
            event_type = INSERT
        else:
            rating.emoji = emoji
        self.db.add(rating)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent first reaction from the same user; update theirs instead
            await self.db.rollback()
            rating = await self.get_reaction(queue_item_id, user_id)
            if rating is None:
                raise
            rating.emoji = emoji
            self.db.add(rating)
            await self.db.commit()
            event_type = UPDATE
        await self.db.refresh(rating)

        logger.info(f"User {user_id} reacted {emoji} on {queue_item_id}")
        await self.feed.emit(TABLE, event_type, item.session_id, new=rating)
        return rating

    async def counts(self, queue_item_id: UUID) -> Dict[str, int]:
        result = await self.db.execute(select(Rating.emoji).where(Rating.queue_item_id == queue_item_id))
        return dict(Counter(result.scalars().all()))
