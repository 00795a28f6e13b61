from typing import Optional
from uuid import UUID
from fastapi import Depends, Header, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.db.session import get_session
from karaoke.models.session import Session
from karaoke.models.user import User
from karaoke.services.change_feed import ChangeFeed, get_change_feed
from karaoke.services.challenges import ChallengeLedger
from karaoke.services.invitations import InvitationIssuer
from karaoke.services.reactions import ReactionService
from karaoke.services.roster import ParticipantRoster
from karaoke.services.session_directory import SessionDirectory
from karaoke.services.skip_votes import SkipVoteTally
from karaoke.services.song_queue import SongQueue
from karaoke.services.users import UserService


async def get_current_user(
    session: AsyncSession = Depends(get_session),
    x_user_id: Optional[str] = Header(default=None),
) -> User:
    """Identity is a bare user row chosen by the client; there are no credentials."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Set up your profile first")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Set up your profile first")
    user = await session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Set up your profile first")
    return user


def get_users(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


def get_directory(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SessionDirectory:
    return SessionDirectory(session, feed)


def get_roster(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ParticipantRoster:
    return ParticipantRoster(session, feed)


def get_queue(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SongQueue:
    return SongQueue(session, feed)


def get_tally(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> SkipVoteTally:
    return SkipVoteTally(session, feed)


def get_reactions(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ReactionService:
    return ReactionService(session, feed)


def get_challenges(
    session: AsyncSession = Depends(get_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> ChallengeLedger:
    return ChallengeLedger(session, feed)


def get_invitations(session: AsyncSession = Depends(get_session)) -> InvitationIssuer:
    return InvitationIssuer(session)


async def get_active_session(
    code: str,
    directory: SessionDirectory = Depends(get_directory),
) -> Session:
    """Path-level `{code}` resolved to an open session."""
    return await directory.resolve_session(code)
