from typing import Any
from fastapi import APIRouter, Depends

from karaoke.api import deps
from karaoke.models.session import Session
from karaoke.models.user import User
from karaoke.schemas.invitation import InvitationCreate, InvitationRead, RedeemResponse
from karaoke.schemas.session import SessionRead
from karaoke.services.invitations import InvitationIssuer, generate_shareable_link
from karaoke.services.roster import ParticipantRoster

router = APIRouter()


@router.post("/sessions/{code}/invitations", response_model=InvitationRead, status_code=201)
async def create_invitation(
    *,
    payload: InvitationCreate,
    session: Session = Depends(deps.get_active_session),
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    issuer: InvitationIssuer = Depends(deps.get_invitations),
) -> Any:
    """Create a redeemable invite, optionally limited by uses and expiry."""
    await roster.require_member(session.id, current_user.id)
    invitation = await issuer.issue(session.id, current_user.id, payload.uses_remaining, payload.expires_at)
    response = InvitationRead.model_validate(invitation)
    response.url = generate_shareable_link(session.code)
    return response


@router.post("/invitations/{invitation_code}/redeem", response_model=RedeemResponse)
async def redeem_invitation(
    invitation_code: str,
    current_user: User = Depends(deps.get_current_user),
    roster: ParticipantRoster = Depends(deps.get_roster),
    issuer: InvitationIssuer = Depends(deps.get_invitations),
) -> Any:
    """Use an invite and join its session."""
    redemption = await issuer.redeem(invitation_code)
    await roster.join(redemption.session.id, current_user.id, invited_by=redemption.invitation.invited_by)
    return RedeemResponse(
        session=SessionRead.model_validate(redemption.session),
        invitation=InvitationRead.model_validate(redemption.invitation),
    )
