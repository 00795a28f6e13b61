"""
Song queue: per-session FIFO of requested songs.

Positions are assigned as max(existing) + 1 at insert time. Two concurrent
enqueues can compute the same position; readers tie-break on created_at, then
id, so both rows survive in a stable order.

Playback start is a single conditional UPDATE that only succeeds while the
session has no other playing item. Under READ COMMITTED two such updates can
still both pass their NOT EXISTS check, so the partial unique index
ix_song_queue_one_playing is what finally rejects the loser.

Only queued items can be removed. Played and skipped items are history.
"""
import logging
from typing import List, Optional, Sequence
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import delete, func, update, exists
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.orm import aliased
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.errors import ConflictError, InvalidArgumentError, InvalidStateError, NotFoundError
from karaoke.models.challenge import Challenge
from karaoke.models.session import Session
from karaoke.models.song import Song, QueueItem, QueueStatus, TERMINAL_STATUSES
from karaoke.models.user import User
from karaoke.models.vote import Rating, SkipVote
from karaoke.schemas.queue import SongIn, QueueItemDetail
from karaoke.services.change_feed import ChangeEvent, ChangeFeed, INSERT, UPDATE, DELETE
from karaoke.utils.datetime_helpers import utcnow

logger = logging.getLogger(__name__)

TABLE = "song_queue"

PLAYBACK_ORDER = (QueueItem.queue_position.asc(), QueueItem.created_at.asc(), QueueItem.id.asc())


class SongQueue:
    def __init__(self, db: AsyncSession, feed: ChangeFeed):
        self.db = db
        self.feed = feed

    # ─────────────────── helpers ───────────────────

    async def _active_session(self, session_id: UUID) -> Session:
        session = await self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_active:
            raise InvalidStateError("This session has ended")
        return session

    async def get_item(self, queue_item_id: UUID) -> QueueItem:
        item = await self.db.get(QueueItem, queue_item_id)
        if item is None:
            raise NotFoundError("Queue item not found")
        return item

    async def get_or_create_song(self, song_in: SongIn) -> Song:
        """Lookup-or-insert a catalog song by its YouTube id."""
        result = await self.db.execute(select(Song).where(Song.youtube_id == song_in.youtube_id))
        song = result.scalars().first()
        if song:
            return song

        song = Song(**song_in.model_dump())
        self.db.add(song)
        try:
            await self.db.commit()
        except IntegrityError:
            # Someone else cataloged it first
            await self.db.rollback()
            result = await self.db.execute(select(Song).where(Song.youtube_id == song_in.youtube_id))
            song = result.scalars().first()
            if song is None:
                raise
            return song
        await self.db.refresh(song)
        logger.info(f"Cataloged song {song.youtube_id} as {song.id}")
        return song

    async def _next_position(self, session_id: UUID) -> int:
        # Computed over the whole session (history included) so positions never repeat
        result = await self.db.execute(
            select(func.max(QueueItem.queue_position)).where(QueueItem.session_id == session_id)
        )
        max_pos = result.scalar_one_or_none()
        return (max_pos if max_pos is not None else -1) + 1

    # ─────────────────── operations ───────────────────

    async def enqueue(
        self,
        session_id: UUID,
        song: SongIn,
        requested_by: UUID,
        is_challenge: bool = False,
        challenged_user_id: Optional[UUID] = None,
    ) -> QueueItem:
        await self._active_session(session_id)
        if challenged_user_id is not None and challenged_user_id == requested_by:
            raise InvalidArgumentError("You can't challenge yourself")

        catalog_song = await self.get_or_create_song(song)
        position = await self._next_position(session_id)

        item = QueueItem(
            session_id=session_id,
            song_id=catalog_song.id,
            requested_by=requested_by,
            queue_position=position,
            status=QueueStatus.QUEUED,
            is_challenge=is_challenge or challenged_user_id is not None,
            challenged_user_id=challenged_user_id,
        )
        self.db.add(item)
        await self.db.commit()
        await self.db.refresh(item)

        logger.info(f"Queued {catalog_song.youtube_id} at position {position} in session {session_id}")
        await self.feed.emit(TABLE, INSERT, session_id, new=item)
        return item

    async def start_playback(self, queue_item_id: UUID) -> QueueItem:
        """queued -> playing, only while no other item in the session is playing."""
        item = await self.get_item(queue_item_id)
        await self._active_session(item.session_id)
        if item.status != QueueStatus.QUEUED:
            raise InvalidStateError(f"Can't play a song that is {item.status.value}")

        other = aliased(QueueItem)
        try:
            result = await self.db.execute(
                update(QueueItem)
                .where(
                    QueueItem.id == queue_item_id,
                    QueueItem.status == QueueStatus.QUEUED,
                    ~exists().where(
                        other.session_id == item.session_id,
                        other.status == QueueStatus.PLAYING,
                    ),
                )
                .values(status=QueueStatus.PLAYING)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(f"Concurrent playback start in session {item.session_id}")
            raise ConflictError("Another song is already playing")

        if result.rowcount != 1:
            await self.db.refresh(item)
            if item.status != QueueStatus.QUEUED:
                raise InvalidStateError(f"Can't play a song that is {item.status.value}")
            raise ConflictError("Another song is already playing")

        await self.db.refresh(item)
        logger.info(f"Started playback of {queue_item_id} in session {item.session_id}")
        await self.feed.emit(TABLE, UPDATE, item.session_id, new=item)
        return item

    async def complete_or_skip(self, queue_item_id: UUID, outcome: QueueStatus) -> QueueItem:
        """playing -> completed | skipped. Both are terminal."""
        if outcome not in TERMINAL_STATUSES:
            raise InvalidArgumentError("Outcome must be completed or skipped")

        item = await self.get_item(queue_item_id)
        await self._active_session(item.session_id)

        values = {"status": outcome}
        if outcome == QueueStatus.COMPLETED:
            values["played_at"] = utcnow()

        result = await self.db.execute(
            update(QueueItem)
            .where(QueueItem.id == queue_item_id, QueueItem.status == QueueStatus.PLAYING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        await self.db.refresh(item)

        if result.rowcount != 1:
            raise InvalidStateError(f"Can't finish a song that is {item.status.value}")

        logger.info(f"Queue item {queue_item_id} {outcome.value}")
        await self.feed.emit(TABLE, UPDATE, item.session_id, new=item)
        return item

    async def remove(self, queue_item_id: UUID) -> QueueItem:
        """Hard-delete a queued item along with its reactions and skip votes."""
        item = await self.get_item(queue_item_id)
        await self._active_session(item.session_id)
        if item.status != QueueStatus.QUEUED:
            raise InvalidStateError(f"Can't remove a song that is {item.status.value}")

        linked = await self.db.execute(
            select(Challenge.id).where(Challenge.queue_item_id == queue_item_id).limit(1)
        )
        if linked.first() is not None:
            raise InvalidStateError("Can't remove a song that belongs to a challenge")

        await self.db.execute(delete(Rating).where(Rating.queue_item_id == queue_item_id))
        await self.db.execute(delete(SkipVote).where(SkipVote.queue_item_id == queue_item_id))
        await self.db.delete(item)
        await self.db.commit()

        logger.info(f"Removed queue item {queue_item_id} from session {item.session_id}")
        await self.feed.emit(TABLE, DELETE, item.session_id, old=item)
        return item

    async def list(
        self,
        session_id: UUID,
        statuses: Optional[Sequence[QueueStatus]] = None,
    ) -> List[QueueItemDetail]:
        """Queue rows joined with song and requester, in playback order."""
        stmt = (
            select(QueueItem, Song, User)
            .join(Song, Song.id == QueueItem.song_id)
            .join(User, User.id == QueueItem.requested_by)
            .where(QueueItem.session_id == session_id)
            .order_by(*PLAYBACK_ORDER)
            .execution_options(populate_existing=True)
        )
        if statuses:
            stmt = stmt.where(QueueItem.status.in_(list(statuses)))
        result = await self.db.execute(stmt)

        details = []
        for item, song, requester in result.all():
            try:
                details.append(QueueItemDetail.model_validate({
                    **item.model_dump(),
                    "song": song.model_dump(),
                    "requester": requester.model_dump(),
                }))
            except ValidationError:
                logger.error(f"Malformed queue row {item.id} in session {session_id}")
                raise
        return details

    async def now_playing(self, session_id: UUID) -> Optional[QueueItem]:
        result = await self.db.execute(
            select(QueueItem)
            .where(QueueItem.session_id == session_id, QueueItem.status == QueueStatus.PLAYING)
            .order_by(*PLAYBACK_ORDER)
            .limit(1)
        )
        return result.scalars().first()

    async def next_up(self, session_id: UUID) -> Optional[QueueItem]:
        result = await self.db.execute(
            select(QueueItem)
            .where(QueueItem.session_id == session_id, QueueItem.status == QueueStatus.QUEUED)
            .order_by(*PLAYBACK_ORDER)
            .limit(1)
        )
        return result.scalars().first()

    async def play_next(self, session_id: UUID) -> Optional[QueueItem]:
        """Start the head of the queue. Returns None when nothing is queued."""
        await self._active_session(session_id)
        head = await self.next_up(session_id)
        if head is None:
            logger.info(f"Queue empty in session {session_id}")
            return None
        return await self.start_playback(head.id)


class QueueView:
    """Live queue read model. Any change to the session's queue triggers a refetch.

    Each refetch borrows a database session only for the duration of the query.
    """

    def __init__(self, session_id: UUID, feed: ChangeFeed, session_factory: async_sessionmaker):
        self.session_id = str(session_id)
        self.feed = feed
        self.session_factory = session_factory
        self.items: List[QueueItemDetail] = []

    async def refresh(self) -> List[QueueItemDetail]:
        async with self.session_factory() as db:
            self.items = await SongQueue(db, self.feed).list(UUID(self.session_id))
        return self.items

    async def apply(self, event: ChangeEvent) -> bool:
        if event.table != TABLE or event.session_id != self.session_id:
            return False
        await self.refresh()
        return True

    @property
    def queued(self) -> List[QueueItemDetail]:
        return [i for i in self.items if i.status == QueueStatus.QUEUED]

    @property
    def playing(self) -> Optional[QueueItemDetail]:
        return next((i for i in self.items if i.status == QueueStatus.PLAYING), None)
