"""
Session WebSocket.

On connect: one `snapshot` message (participants + queue). Afterwards:
  - `participants_update` whenever the roster changes
  - `queue_update` after any queue write (full refetch)
  - `change` for ratings, skip votes, challenges and session updates
"""
import asyncio
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends

from karaoke.core.errors import KaraokeError
from karaoke.db.session import AsyncSessionLocal
from karaoke.schemas.user import UserRead
from karaoke.services.change_feed import ChangeEvent, ChangeFeed, get_change_feed
from karaoke.services.roster import RosterView
from karaoke.services.session_directory import SessionDirectory
from karaoke.services.song_queue import QueueView

logger = logging.getLogger(__name__)

router = APIRouter()

RAW_TABLES = ("ratings", "skip_votes", "challenges", "sessions")


def _participants_payload(view: RosterView) -> list:
    return [UserRead.model_validate(u).model_dump(mode="json") for u in view.users]


def _queue_payload(view: QueueView) -> list:
    return [i.model_dump(mode="json") for i in view.items]


@router.websocket("/{code}")
async def websocket_endpoint(
    websocket: WebSocket,
    code: str,
    feed: ChangeFeed = Depends(get_change_feed),
):
    # Connections stay open for hours; database sessions are only borrowed per query
    async with AsyncSessionLocal() as db:
        try:
            session = await SessionDirectory(db, feed).resolve_session(code)
        except KaraokeError as e:
            session = None
            reason = e.message
    if session is None:
        await websocket.close(code=4404, reason=reason)
        return

    await websocket.accept()
    roster_view = RosterView(session.id, feed, AsyncSessionLocal)
    queue_view = QueueView(session.id, feed, AsyncSessionLocal)
    await roster_view.load()
    await queue_view.refresh()
    await websocket.send_json({
        "type": "snapshot",
        "data": {
            "participants": _participants_payload(roster_view),
            "queue": _queue_payload(queue_view),
        },
    })

    # Events can arrive while a refetch is awaiting the DB; one at a time
    lock = asyncio.Lock()

    async def on_participants(event: ChangeEvent):
        async with lock:
            if await roster_view.apply(event):
                await websocket.send_json({"type": "participants_update", "data": _participants_payload(roster_view)})

    async def on_queue(event: ChangeEvent):
        async with lock:
            await queue_view.apply(event)
            await websocket.send_json({"type": "queue_update", "data": _queue_payload(queue_view)})

    async def on_raw(event: ChangeEvent):
        await websocket.send_json({
            "type": "change",
            "data": {"table": event.table, "event_type": event.event_type, "new": event.new, "old": event.old},
        })

    unsubscribers = [
        await feed.subscribe(session.id, "session_participants", on_participants),
        await feed.subscribe(session.id, "song_queue", on_queue),
    ]
    for table in RAW_TABLES:
        unsubscribers.append(await feed.subscribe(session.id, table, on_raw))

    try:
        while True:
            # Incoming messages are only keep-alives
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"WebSocket left session {session.id}")
    finally:
        for unsubscribe in unsubscribers:
            await unsubscribe()
