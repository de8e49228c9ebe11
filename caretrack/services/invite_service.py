"""Caretaker invitation workflow: issue, validate and redeem single-use tokens."""

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caretrack.core.exceptions import (
    ConflictError,
    InvitationAlreadyUsedError,
    NotFoundError,
)
from caretrack.core.security import generate_invite_token
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import InvitationStatus
from caretrack.db.models import Invitation, UserAccount, utcnow
from caretrack.schemas.auth import Principal
from caretrack.services import assignment_service, permission_service

logger = logging.getLogger(__name__)

PENDING_CONFLICT_MESSAGE = "An invitation is already pending for this email."
INVALID_TOKEN_MESSAGE = "Invalid invitation token"
ALREADY_USED_MESSAGE = "This invitation has already been used"
ACCOUNT_EXISTS_MESSAGE = "An account already exists for this email"


def _normalize_email(email: str) -> str:
    return email.lower().strip()


def create_invitation(db: Session, principal: Principal, email: str) -> Invitation:
    """
    Reserve an email for caretaker signup.

    Raises:
        NotAuthorizedError: caller may not invite
        ConflictError: a pending invitation already exists for this email
    """
    permission_service.require_inviter(principal)
    email = _normalize_email(email)

    existing = db.query(Invitation.id).filter(
        Invitation.email == email,
        Invitation.status == InvitationStatus.PENDING.value,
    ).first()
    if existing:
        raise ConflictError(PENDING_CONFLICT_MESSAGE)

    invitation = Invitation(
        token=generate_invite_token(),
        email=email,
        invited_by_user_id=principal.user_id,
        invited_by_role=principal.role.value,
        status=InvitationStatus.PENDING.value,
    )
    db.add(invitation)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(PENDING_CONFLICT_MESSAGE)

    logger.info(
        "Invitation created id=%s",
        invitation.id,
        extra=build_log_context(user_id=principal.user_id),
    )
    return invitation


def get_invitation_by_token(db: Session, token: str) -> Invitation | None:
    return db.query(Invitation).filter(Invitation.token == token).first()


def validate_invitation(db: Session, token: str) -> Invitation:
    """
    Check a token without consuming it.

    Raises:
        NotFoundError: unknown token
        InvitationAlreadyUsedError: token already redeemed
    """
    invitation = get_invitation_by_token(db, token)
    if not invitation:
        raise NotFoundError(INVALID_TOKEN_MESSAGE)
    if invitation.status == InvitationStatus.ACCEPTED.value:
        raise InvitationAlreadyUsedError(ALREADY_USED_MESSAGE)
    return invitation


def complete_signup(
    db: Session,
    token: str,
    full_name: str,
    phone: str | None = None,
) -> UserAccount:
    """
    Redeem an invitation: create the caretaker account and, for patient
    invites, the assignment to the inviting patient.

    The pending -> accepted flip is a conditional update; of two concurrent
    completions exactly one matches the row and the other gets
    InvitationAlreadyUsedError.
    """
    invitation = validate_invitation(db, token)

    taken = db.query(UserAccount.id).filter(UserAccount.email == invitation.email).first()
    if taken:
        raise ConflictError(ACCOUNT_EXISTS_MESSAGE)

    account = UserAccount(
        role=permission_service.invitee_role().value,
        full_name=full_name.strip(),
        email=invitation.email,
        phone=phone,
    )
    db.add(account)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(ACCOUNT_EXISTS_MESSAGE)

    # Rolling back also discards the account inserted above.
    result = db.execute(
        update(Invitation)
        .where(
            Invitation.id == invitation.id,
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .values(
            status=InvitationStatus.ACCEPTED.value,
            accepted_at=utcnow(),
            accepted_by_user_id=account.id,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise InvitationAlreadyUsedError(ALREADY_USED_MESSAGE)

    if invitation.invited_by_user_id and permission_service.inviter_links_assignment(
        invitation.invited_by_role
    ):
        assignment_service.insert_assignment(
            db,
            patient_id=invitation.invited_by_user_id,
            caretaker_id=account.id,
            assigned_by_user_id=invitation.invited_by_user_id,
        )

    db.refresh(invitation)
    logger.info(
        "Invitation redeemed id=%s",
        invitation.id,
        extra=build_log_context(user_id=account.id, patient_id=invitation.invited_by_user_id),
    )
    return account


def list_invitations(db: Session, principal: Principal) -> list[Invitation]:
    """Invitations issued by the caller, newest first."""
    permission_service.require_inviter(principal)
    return db.query(Invitation).filter(
        Invitation.invited_by_user_id == principal.user_id
    ).order_by(Invitation.created_at.desc()).limit(100).all()
