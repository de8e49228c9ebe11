"""Caretaker invitation endpoints."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db, require_csrf_header
from caretrack.core.rate_limit import invites_limit, limiter
from caretrack.schemas.auth import Principal
from caretrack.schemas.invitation import (
    AccountRead,
    InvitationCreate,
    InvitationCreateResponse,
    InvitationRead,
    InvitationValidation,
    SignupComplete,
)
from caretrack.services import invite_email_service, invite_service
from caretrack.services.invite_email_service import Notifier

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post(
    "",
    response_model=InvitationCreateResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(invites_limit)
async def create_invite(
    request: Request,  # Required by limiter
    body: InvitationCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    notifier: Notifier = Depends(invite_email_service.get_notifier),
):
    """Invite a caretaker by email. Email failure still returns the link."""
    invitation = invite_service.create_invitation(db, principal, body.email)
    db.commit()
    db.refresh(invitation)

    delivery = await invite_email_service.deliver_invitation(notifier, invitation)
    return InvitationCreateResponse(
        invitation=InvitationRead.model_validate(invitation),
        invite_link=delivery.invite_link,
        email_sent=delivery.email_sent,
        warning=delivery.warning,
    )


@router.get("", response_model=list[InvitationRead])
async def list_invites(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Invitations sent by the caller."""
    return invite_service.list_invitations(db, principal)


# =============================================================================
# Public (invitee) endpoints
# =============================================================================

@router.get("/validate", response_model=InvitationValidation)
@limiter.limit(invites_limit)
async def validate_invite(
    request: Request,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
):
    """Return the reserved email for a usable token."""
    invitation = invite_service.validate_invitation(db, token)
    return InvitationValidation(email=invitation.email)


@router.post(
    "/complete",
    response_model=AccountRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(invites_limit)
async def complete_signup(
    request: Request,
    body: SignupComplete,
    db: Session = Depends(get_db),
):
    """Redeem a token and create the caretaker account."""
    account = invite_service.complete_signup(db, body.token, body.full_name, body.phone)
    db.commit()
    db.refresh(account)
    return account
