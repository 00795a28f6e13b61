import logging
from typing import Any, List
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.core.errors import PermissionDeniedError
from karaoke.models.session import Session
from karaoke.models.user import User
from karaoke.schemas.session import SessionCreate, SessionRead, SessionState, ShareLink
from karaoke.schemas.user import UserRead
from karaoke.services.invitations import generate_shareable_link
from karaoke.services.roster import ParticipantRoster
from karaoke.services.session_directory import SessionDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


async def _state(session: Session, roster: ParticipantRoster) -> SessionState:
    users = await roster.list(session.id)
    return SessionState(
        meta=SessionRead.model_validate(session),
        participants=[UserRead.model_validate(u) for u in users],
        participant_count=len(users),
    )


@router.post("", response_model=SessionRead, status_code=201)
async def create_session(
    *,
    session_in: SessionCreate,
    current_user: User = Depends(deps.get_current_user),
    directory: SessionDirectory = Depends(deps.get_directory),
) -> Any:
    """
    Create new session. The host joins automatically.
    """
    return await directory.create_session(session_in.name, current_user.id)


@router.get("/{code}", response_model=SessionState)
async def get_session_state(
    session: Session = Depends(deps.get_active_session),
    roster: ParticipantRoster = Depends(deps.get_roster),
) -> Any:
    """
    Get session info and roster by join code (case-insensitive).
    """
    return await _state(session, roster)


@router.post("/{code}/join", response_model=SessionState)
async def join_session(
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
) -> Any:
    """
    Join a session. Joining twice is a no-op.
    """
    await roster.join(session.id, current_user.id)
    return await _state(session, roster)


@router.post("/{code}/leave", status_code=204)
async def leave_session(
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
):
    await roster.leave(session.id, current_user.id)


@router.post("/{code}/close", response_model=SessionRead)
async def close_session(
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    directory: SessionDirectory = Depends(deps.get_directory),
) -> Any:
    """
    Host only: end the session. Queue and roster are kept for history.
    """
    if session.host_id != current_user.id:
        raise PermissionDeniedError("Only the host can end the session")
    return await directory.close_session(session.id)


@router.get("/{code}/participants", response_model=List[UserRead])
async def list_participants(
    session: Session = Depends(deps.get_active_session),
    roster: ParticipantRoster = Depends(deps.get_roster),
) -> Any:
    return await roster.list(session.id)


@router.get("/{code}/link", response_model=ShareLink)
async def share_link(session: Session = Depends(deps.get_active_session)) -> Any:
    return ShareLink(code=session.code, url=generate_shareable_link(session.code))
