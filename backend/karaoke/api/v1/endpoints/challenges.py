from typing import Any, List, Optional
from uuid import UUID
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.core.errors import PermissionDeniedError
from karaoke.models.challenge import ChallengeStatus
from karaoke.models.session import Session
from karaoke.models.user import User
from karaoke.schemas.challenge import ChallengeCreate, ChallengeRead, ChallengeRespond, ChallengeComplete
from karaoke.services.challenges import ChallengeLedger
from karaoke.services.roster import ParticipantRoster

router = APIRouter()


@router.post("/sessions/{code}/challenges", response_model=ChallengeRead, status_code=201)
async def create_challenge(
    *,
    payload: ChallengeCreate,
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    ledger: ChallengeLedger = Depends(deps.get_challenges),
) -> Any:
    """Dare another participant to sing a song."""
    await roster.require_member(session.id, current_user.id)
    if payload.challenged_id != current_user.id and not await roster.is_member(session.id, payload.challenged_id):
        raise PermissionDeniedError("You can only challenge people in this session")
    return await ledger.create(
        session.id,
        current_user.id,
        payload.challenged_id,
        payload.song_id,
        payload.message,
    )


@router.get("/sessions/{code}/challenges", response_model=List[ChallengeRead])
async def list_challenges(
    status: Optional[ChallengeStatus] = None,
    session: Session = Depends(deps.get_active_session),
    ledger: ChallengeLedger = Depends(deps.get_challenges),
) -> Any:
    return await ledger.list_for_session(session.id, status)


@router.get("/challenges/pending", response_model=List[ChallengeRead])
async def my_pending_challenges(
    current_user: User = Depends(deps.get_current_user),
    ledger: ChallengeLedger = Depends(deps.get_challenges),
) -> Any:
    return await ledger.list_pending_for(current_user.id)


@router.post("/challenges/{challenge_id}/respond", response_model=ChallengeRead)
async def respond_to_challenge(
    challenge_id: UUID,
    payload: ChallengeRespond,
    current_user: User = Depends(deps.get_current_user),
    ledger: ChallengeLedger = Depends(deps.get_challenges),
) -> Any:
    challenge = await ledger.get(challenge_id)
    if challenge.challenged_id != current_user.id:
        raise PermissionDeniedError("Only the challenged singer can respond")
    return await ledger.respond(challenge_id, payload.accept)


@router.post("/challenges/{challenge_id}/complete", response_model=ChallengeRead)
async def complete_challenge(
    challenge_id: UUID,
    payload: ChallengeComplete,
    current_user: User = Depends(deps.get_current_user),
    ledger: ChallengeLedger = Depends(deps.get_challenges),
) -> Any:
    challenge = await ledger.get(challenge_id)
    if challenge.challenged_id != current_user.id:
        raise PermissionDeniedError("Only the challenged singer can complete this")
    return await ledger.complete(challenge_id, payload.queue_item_id)
