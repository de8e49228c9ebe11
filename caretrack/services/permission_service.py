"""Permission gate.

Every role decision in the application is made in this module. Services and
routers ask the gate questions ("may this principal read this patient's
data?") instead of comparing roles themselves.

Caretaker access is evaluated per request against the live assignment row;
nothing is cached, so deleting or deactivating an assignment takes effect on
the very next call.
"""

import logging
from dataclasses import dataclass
from typing import Iterable
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from caretrack.core.exceptions import NotAuthorizedError, NotFoundError, ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import AssignmentStatus, Capability, Role
from caretrack.db.models import Assignment, UserAccount, utcnow
from caretrack.schemas.auth import Principal

logger = logging.getLogger(__name__)

CAPABILITY_DENIED_REASONS = {
    Capability.VIEW_DATA: "The patient has not allowed you to view their data.",
    Capability.LOG_ON_BEHALF: "The patient has not allowed you to log check-ins for them.",
    Capability.GENERATE_REPORTS: "The patient has not allowed you to generate reports.",
}


@dataclass(frozen=True)
class AccessGrant:
    """Caller may act on the patient's data."""

    patient_id: UUID
    actor_id: UUID
    assignment_id: UUID | None = None


@dataclass(frozen=True)
class Restricted:
    """
    Caller has an active relationship with the patient but lacks the flag.

    This is a value, not an error: read endpoints render it so clients can
    tell "hidden from you" apart from "nothing recorded".
    """

    patient_id: UUID
    capability: Capability
    reason: str


# =============================================================================
# Role checks
# =============================================================================

def require_any_role(principal: Principal, allowed_roles: Iterable[Role]) -> None:
    allowed = set(allowed_roles)
    if principal.role not in allowed:
        raise NotAuthorizedError(
            f"Role '{principal.role.value}' not authorized for this action"
        )


def require_admin(principal: Principal) -> None:
    require_any_role(principal, [Role.ADMIN])


def require_inviter(principal: Principal) -> None:
    """Patients and admins may invite caretakers."""
    require_any_role(principal, [Role.PATIENT, Role.ADMIN])


def account_has_role(account: UserAccount | None, role: Role) -> bool:
    if account is None or not Role.has_value(account.role):
        return False
    return Role(account.role) == role


def inviter_links_assignment(inviter_role: str) -> bool:
    """Signups invited by a patient are assigned to that patient."""
    return Role.has_value(inviter_role) and Role(inviter_role) == Role.PATIENT


def invitee_role() -> Role:
    """Invitations always register caretakers."""
    return Role.CARETAKER


def get_account_with_role(db: Session, account_id: UUID, role: Role) -> UserAccount:
    """Resolve an account id that must carry the given role.

    Raises:
        ValidationError: id does not resolve to an account with that role
    """
    account = db.query(UserAccount).filter(UserAccount.id == account_id).first()
    if not account_has_role(account, role):
        raise ValidationError(f"{account_id} is not a {role.value} account")
    return account


# =============================================================================
# Patient data access
# =============================================================================

def get_active_assignment(
    db: Session,
    patient_id: UUID,
    caretaker_id: UUID,
) -> Assignment | None:
    """Fresh lookup of the active assignment for a pair."""
    return db.query(Assignment).filter(
        Assignment.patient_id == patient_id,
        Assignment.caretaker_id == caretaker_id,
        Assignment.status == AssignmentStatus.ACTIVE.value,
    ).first()


def _get_patient(db: Session, patient_id: UUID) -> UserAccount:
    patient = db.query(UserAccount).filter(UserAccount.id == patient_id).first()
    if not account_has_role(patient, Role.PATIENT):
        raise NotFoundError("Patient not found")
    return patient


def evaluate_patient_access(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    capability: Capability,
) -> AccessGrant | Restricted:
    """
    Decide whether the principal may exercise a capability on a patient.

    - Patients: only their own data.
    - Admins: any patient.
    - Caretakers: need an active assignment; the flag decides between a
      grant and Restricted.

    Raises:
        NotFoundError: patient does not exist
        NotAuthorizedError: no relationship with this patient
    """
    if principal.role == Role.PATIENT:
        if principal.user_id != patient_id:
            raise NotAuthorizedError("Patients can only access their own data")
        _get_patient(db, patient_id)
        return AccessGrant(patient_id=patient_id, actor_id=principal.user_id)

    if principal.role == Role.ADMIN:
        _get_patient(db, patient_id)
        return AccessGrant(patient_id=patient_id, actor_id=principal.user_id)

    if principal.role == Role.CARETAKER:
        assignment = get_active_assignment(db, patient_id, principal.user_id)
        if assignment is None:
            raise NotAuthorizedError("You are not assigned to this patient")
        if not getattr(assignment, capability.value):
            logger.info(
                "Capability %s denied",
                capability.value,
                extra=build_log_context(
                    user_id=principal.user_id,
                    patient_id=patient_id,
                    assignment_id=assignment.id,
                ),
            )
            return Restricted(
                patient_id=patient_id,
                capability=capability,
                reason=CAPABILITY_DENIED_REASONS[capability],
            )
        return AccessGrant(
            patient_id=patient_id,
            actor_id=principal.user_id,
            assignment_id=assignment.id,
        )

    raise NotAuthorizedError(f"Role '{principal.role.value}' not authorized for this action")


def require_patient_access(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    capabilities: Iterable[Capability],
) -> AccessGrant:
    """Like evaluate_patient_access, but a missing flag is a hard denial.

    Used for writes and exports where there is no "restricted view" to render.
    """
    grant = None
    for capability in capabilities:
        decision = evaluate_patient_access(db, principal, patient_id, capability)
        if isinstance(decision, Restricted):
            raise NotAuthorizedError(decision.reason)
        grant = decision
    if grant is None:
        raise ValueError("At least one capability is required")
    return grant


def caretaker_patient_ids(
    db: Session,
    principal: Principal,
    capability: Capability,
) -> list[UUID]:
    """Patients whose data the caretaker currently holds the capability for."""
    require_any_role(principal, [Role.CARETAKER])
    column = getattr(Assignment, capability.value)
    rows = db.query(Assignment.patient_id).filter(
        Assignment.caretaker_id == principal.user_id,
        Assignment.status == AssignmentStatus.ACTIVE.value,
        column.is_(True),
    ).all()
    return [row.patient_id for row in rows]


# =============================================================================
# Capability flag writes
# =============================================================================

@dataclass(frozen=True)
class CapabilityChange:
    """
    One flag write, recorded with its prior value.

    If the write is not confirmed, compensation() yields the transition that
    puts the flag back.
    """

    assignment_id: UUID
    capability: Capability
    previous: bool
    requested: bool

    def compensation(self) -> "CapabilityChange":
        return CapabilityChange(
            assignment_id=self.assignment_id,
            capability=self.capability,
            previous=self.requested,
            requested=self.previous,
        )


def apply_capability_change(db: Session, change: CapabilityChange) -> bool:
    """Single-field conditional write. Returns True if the row was updated."""
    result = db.execute(
        update(Assignment)
        .where(Assignment.id == change.assignment_id)
        .values({change.capability.value: change.requested, "updated_at": utcnow()})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def set_capability(
    db: Session,
    principal: Principal,
    assignment_id: UUID,
    capability: Capability,
    enabled: bool,
) -> tuple[Assignment, CapabilityChange]:
    """
    Set one capability flag on an assignment.

    Only the owning patient may do this (admins included in "anyone else").

    Raises:
        NotFoundError: assignment missing, or removed before the write landed
        NotAuthorizedError: caller is not the assignment's patient
    """
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise NotFoundError("Assignment not found")
    if principal.role != Role.PATIENT or assignment.patient_id != principal.user_id:
        raise NotAuthorizedError("Only the patient can change caretaker permissions")

    change = CapabilityChange(
        assignment_id=assignment.id,
        capability=capability,
        previous=bool(getattr(assignment, capability.value)),
        requested=enabled,
    )
    if not apply_capability_change(db, change):
        raise NotFoundError("Assignment not found")

    db.refresh(assignment)
    logger.info(
        "Capability %s set to %s",
        capability.value,
        enabled,
        extra=build_log_context(
            user_id=principal.user_id,
            patient_id=assignment.patient_id,
            assignment_id=assignment.id,
        ),
    )
    return assignment, change


def revert_capability(db: Session, change: CapabilityChange) -> None:
    """Apply the compensating transition for an unconfirmed change."""
    undo = change.compensation()
    if not apply_capability_change(db, undo):
        logger.warning(
            "Compensation for %s skipped; assignment no longer exists",
            change.capability.value,
            extra=build_log_context(assignment_id=change.assignment_id),
        )
