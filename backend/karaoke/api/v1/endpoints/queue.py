"""
Queue endpoints.

The DB is the source of truth; every write is announced on the change feed
by the service, so clients watching the session refetch on their own.
"""
import logging
from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.core.errors import PermissionDeniedError
from karaoke.models.session import Session
from karaoke.models.song import QueueStatus, TERMINAL_STATUSES
from karaoke.models.user import User
from karaoke.schemas.queue import QueueAddRequest, QueueItemRead, QueueListResponse, FinishRequest
from karaoke.services.roster import ParticipantRoster
from karaoke.services.session_directory import SessionDirectory
from karaoke.services.song_queue import SongQueue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sessions/{code}/queue", response_model=QueueListResponse)
async def get_queue(
    session: Session = Depends(deps.get_active_session),
    queue: SongQueue = Depends(deps.get_queue),
) -> Any:
    """Now playing, upcoming songs in order, and what already played."""
    items = await queue.list(session.id)
    return QueueListResponse(
        now_playing=next((i for i in items if i.status == QueueStatus.PLAYING), None),
        queue=[i for i in items if i.status == QueueStatus.QUEUED],
        history=[i for i in items if i.status in TERMINAL_STATUSES],
    )


@router.post("/sessions/{code}/queue", response_model=QueueItemRead, status_code=201)
async def add_to_queue(
    *,
    payload: QueueAddRequest,
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
) -> Any:
    """Add a song picked from search results to the end of the queue."""
    await roster.require_member(session.id, current_user.id)
    if payload.challenged_user_id is not None and not await roster.is_member(session.id, payload.challenged_user_id):
        raise PermissionDeniedError("You can only challenge people in this session")
    return await queue.enqueue(
        session.id,
        payload.song,
        current_user.id,
        is_challenge=payload.is_challenge,
        challenged_user_id=payload.challenged_user_id,
    )


@router.post("/sessions/{code}/queue/next", response_model=QueueItemRead | None)
async def play_next(
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
) -> Any:
    """Start the song at the head of the queue. Returns null if nothing is queued."""
    await roster.require_member(session.id, current_user.id)
    return await queue.play_next(session.id)


@router.post("/queue/{item_id}/play", response_model=QueueItemRead)
async def start_playback(
    item_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
) -> Any:
    item = await queue.get_item(item_id)
    await roster.require_member(item.session_id, current_user.id)
    return await queue.start_playback(item_id)


@router.post("/queue/{item_id}/finish", response_model=QueueItemRead)
async def finish(
    item_id: UUID,
    payload: FinishRequest,
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
) -> Any:
    """Signal that the current song has ended (`completed`) or was cut short (`skipped`)."""
    item = await queue.get_item(item_id)
    await roster.require_member(item.session_id, current_user.id)
    return await queue.complete_or_skip(item_id, payload.outcome)


@router.delete("/queue/{item_id}", status_code=204)
async def remove_from_queue(
    item_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    directory: SessionDirectory = Depends(deps.get_directory),
    queue: SongQueue = Depends(deps.get_queue),
):
    """Requester or host: drop a song that hasn't started."""
    item = await queue.get_item(item_id)
    session = await directory.get(item.session_id)
    if current_user.id not in (item.requested_by, session.host_id if session else None):
        raise PermissionDeniedError("Only the requester or the host can remove this song")
    await queue.remove(item_id)
