"""Skip votes and reactions on queue items."""
import logging
from typing import Any, Dict
from uuid import UUID
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.core.errors import InvalidStateError
from karaoke.models.song import QueueStatus
from karaoke.models.user import User
from karaoke.schemas.queue import VoteSkipResponse, SkipTally, ReactionRequest, ReactionRead
from karaoke.services.reactions import ReactionService
from karaoke.services.roster import ParticipantRoster
from karaoke.services.skip_votes import SkipVoteTally
from karaoke.services.song_queue import SongQueue

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{item_id}/skip-vote", response_model=VoteSkipResponse)
async def vote_skip(
    item_id: UUID,
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
    tally: SkipVoteTally = Depends(deps.get_tally),
) -> Any:
    """Any member: vote to skip the playing song, or take the vote back."""
    item = await queue.get_item(item_id)
    await roster.require_member(item.session_id, current_user.id)

    result = await tally.cast_or_retract(item_id, current_user.id, item.session_id)

    skipped = False
    if result.skip_triggered:
        try:
            await queue.complete_or_skip(item_id, QueueStatus.SKIPPED)
            skipped = True
        except InvalidStateError:
            # Already finished by someone else between the vote and now
            logger.info(f"Skip threshold hit on {item_id} but it is no longer playing")

    return VoteSkipResponse(
        voted=result.voted,
        vote_count=result.vote_count,
        participant_count=result.participant_count,
        skipped=skipped,
    )


@router.get("/{item_id}/skip-votes", response_model=SkipTally)
async def get_skip_votes(item_id: UUID, tally: SkipVoteTally = Depends(deps.get_tally)) -> Any:
    return await tally.tally(item_id)


@router.put("/{item_id}/reaction", response_model=ReactionRead)
async def set_reaction(
    item_id: UUID,
    payload: ReactionRequest,
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    queue: SongQueue = Depends(deps.get_queue),
    reactions: ReactionService = Depends(deps.get_reactions),
) -> Any:
    item = await queue.get_item(item_id)
    await roster.require_member(item.session_id, current_user.id)
    return await reactions.set_reaction(item_id, current_user.id, payload.emoji)


@router.get("/{item_id}/reactions", response_model=Dict[str, int])
async def get_reactions(item_id: UUID, reactions: ReactionService = Depends(deps.get_reactions)) -> Any:
    """Reaction counts by emoji."""
    return await reactions.counts(item_id)
