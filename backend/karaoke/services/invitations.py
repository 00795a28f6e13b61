"""
Invitation issuer.

Redemption decrements uses_remaining with one conditional UPDATE
(``... WHERE uses_remaining > 0``), so two concurrent redemptions of the
last use can't both succeed.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from karaoke.core.config import settings
from karaoke.core.errors import (
    ConflictError,
    ExhaustedError,
    ExpiredError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from karaoke.models.invitation import SessionInvitation
from karaoke.models.session import Session
from karaoke.services.session_directory import CODE_LETTERS, CODE_DIGITS, normalize_code
from karaoke.utils.datetime_helpers import utcnow, ensure_utc

logger = logging.getLogger(__name__)

INVITE_ALPHABET = CODE_LETTERS + CODE_DIGITS


@dataclass
class Redemption:
    session: Session
    invitation: SessionInvitation


def generate_shareable_link(session_code: str, base_url: str | None = None) -> str:
    return f"{(base_url or settings.APP_URL).rstrip('/')}/join/{session_code}"


def generate_invitation_code(length: int | None = None) -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length or settings.INVITATION_CODE_LENGTH))


class InvitationIssuer:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(
        self,
        session_id: UUID,
        invited_by: UUID,
        uses_remaining: Optional[int] = None,
        expires_at: Optional[datetime] = None,
    ) -> SessionInvitation:
        if uses_remaining is not None and uses_remaining < 1:
            raise InvalidArgumentError("Uses must be at least 1")
        session = await self.db.get(Session, session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if not session.is_active:
            raise InvalidStateError("This session has ended")

        invitation = SessionInvitation(
            session_id=session_id,
            invited_by=invited_by,
            invitation_code=generate_invitation_code(),
            uses_remaining=uses_remaining,
            expires_at=ensure_utc(expires_at),
        )
        self.db.add(invitation)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning("Invitation code collision")
            raise ConflictError("Could not create an invitation, please try again")
        await self.db.refresh(invitation)

        logger.info(f"Issued invitation {invitation.invitation_code} for session {session_id}")
        return invitation

    async def redeem(self, code: str) -> Redemption:
        normalized = normalize_code(code)
        result = await self.db.execute(
            select(SessionInvitation).where(SessionInvitation.invitation_code == normalized)
        )
        invitation = result.scalars().first()
        if invitation is None:
            raise NotFoundError("Invalid invitation code")

        session = await self.db.get(Session, invitation.session_id)
        if session is None or not session.is_active:
            raise NotFoundError("Invalid invitation code")

        if invitation.expires_at is not None and ensure_utc(invitation.expires_at) < utcnow():
            raise ExpiredError()

        if invitation.uses_remaining is not None:
            update_result = await self.db.execute(
                update(SessionInvitation)
                .where(
                    SessionInvitation.id == invitation.id,
                    SessionInvitation.uses_remaining > 0,
                )
                .values(uses_remaining=SessionInvitation.uses_remaining - 1)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            await self.db.refresh(invitation)
            if update_result.rowcount != 1:
                raise ExhaustedError()

        logger.info(
            f"Redeemed invitation {invitation.invitation_code} "
            f"(uses left: {invitation.uses_remaining if invitation.uses_remaining is not None else 'unlimited'})"
        )
        return Redemption(session=session, invitation=invitation)
