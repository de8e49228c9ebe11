"""Assignment registry: patient-caretaker relationship lifecycle."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from caretrack.core.exceptions import ConflictError, NotFoundError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import AssignmentStatus, Role
from caretrack.db.models import Assignment
from caretrack.schemas.assignment import AssignmentRead
from caretrack.schemas.auth import Principal
from caretrack.services import permission_service

logger = logging.getLogger(__name__)

PAIR_CONFLICT_MESSAGE = "An assignment already exists for this patient and caretaker"


def _with_accounts(query):
    return query.options(
        joinedload(Assignment.patient),
        joinedload(Assignment.caretaker),
        joinedload(Assignment.assigned_by),
    )


def to_read(assignment: Assignment) -> AssignmentRead:
    """Build the API view, resolving account names."""
    return AssignmentRead(
        id=assignment.id,
        patient_id=assignment.patient_id,
        patient_name=assignment.patient.full_name if assignment.patient else None,
        patient_email=assignment.patient.email if assignment.patient else None,
        caretaker_id=assignment.caretaker_id,
        caretaker_name=assignment.caretaker.full_name if assignment.caretaker else None,
        caretaker_email=assignment.caretaker.email if assignment.caretaker else None,
        assigned_by_user_id=assignment.assigned_by_user_id,
        assigned_by_name=assignment.assigned_by.full_name if assignment.assigned_by else None,
        assigned_at=assignment.assigned_at,
        status=AssignmentStatus(assignment.status),
        notes=assignment.notes,
        can_view_data=assignment.can_view_data,
        can_log_on_behalf=assignment.can_log_on_behalf,
        can_generate_reports=assignment.can_generate_reports,
    )


def insert_assignment(
    db: Session,
    *,
    patient_id: UUID,
    caretaker_id: UUID,
    assigned_by_user_id: UUID | None,
    notes: str | None = None,
) -> Assignment:
    """
    Insert an active assignment with every capability flag off.

    The partial unique index on active pairs is the final arbiter; a losing
    concurrent insert surfaces as ConflictError.
    """
    assignment = Assignment(
        patient_id=patient_id,
        caretaker_id=caretaker_id,
        assigned_by_user_id=assigned_by_user_id,
        status=AssignmentStatus.ACTIVE.value,
        notes=notes,
        can_view_data=False,
        can_log_on_behalf=False,
        can_generate_reports=False,
    )
    db.add(assignment)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(PAIR_CONFLICT_MESSAGE)

    logger.info(
        "Assignment created",
        extra=build_log_context(
            user_id=assigned_by_user_id,
            patient_id=patient_id,
            assignment_id=assignment.id,
        ),
    )
    return assignment


def create_assignment(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    caretaker_id: UUID,
    notes: str | None = None,
) -> Assignment:
    """
    Admin creates a patient-caretaker relationship.

    Raises:
        NotAuthorizedError: caller is not an admin
        ValidationError: an id does not resolve to the expected role
        ConflictError: the pair already has an assignment (active or inactive)
    """
    permission_service.require_admin(principal)
    permission_service.get_account_with_role(db, patient_id, Role.PATIENT)
    permission_service.get_account_with_role(db, caretaker_id, Role.CARETAKER)

    # Fast path; the unique index decides races.
    existing = db.query(Assignment.id).filter(
        Assignment.patient_id == patient_id,
        Assignment.caretaker_id == caretaker_id,
    ).first()
    if existing:
        raise ConflictError(PAIR_CONFLICT_MESSAGE)

    return insert_assignment(
        db,
        patient_id=patient_id,
        caretaker_id=caretaker_id,
        assigned_by_user_id=principal.user_id,
        notes=notes,
    )


def get_assignment(db: Session, assignment_id: UUID) -> Assignment:
    assignment = _with_accounts(db.query(Assignment)).filter(
        Assignment.id == assignment_id
    ).first()
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def set_assignment_status(
    db: Session,
    principal: Principal,
    assignment_id: UUID,
    status: AssignmentStatus,
) -> Assignment:
    """Toggle active/inactive. Idempotent; capability flags are untouched.

    Re-activating fails with ConflictError if another active row exists for
    the same pair.
    """
    permission_service.require_admin(principal)
    assignment = get_assignment(db, assignment_id)
    if assignment.status == status.value:
        return assignment

    assignment.status = status.value
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ConflictError(PAIR_CONFLICT_MESSAGE)

    logger.info(
        "Assignment status set to %s",
        status.value,
        extra=build_log_context(user_id=principal.user_id, assignment_id=assignment.id),
    )
    return assignment


def delete_assignment(db: Session, principal: Principal, assignment_id: UUID) -> None:
    """Hard delete. Access checks read the live row, so revocation is immediate."""
    permission_service.require_admin(principal)
    assignment = db.query(Assignment).filter(Assignment.id == assignment_id).first()
    if not assignment:
        raise NotFoundError("Assignment not found")
    db.delete(assignment)
    db.flush()
    logger.info(
        "Assignment deleted",
        extra=build_log_context(user_id=principal.user_id, assignment_id=assignment_id),
    )


def list_assignments(db: Session, principal: Principal) -> list[Assignment]:
    """All assignments, newest first (admin)."""
    permission_service.require_admin(principal)
    return _with_accounts(db.query(Assignment)).order_by(
        Assignment.assigned_at.desc()
    ).all()


def list_caretaker_assignments(db: Session, principal: Principal) -> list[Assignment]:
    """The calling caretaker's active assignments."""
    permission_service.require_any_role(principal, [Role.CARETAKER])
    return _with_accounts(db.query(Assignment)).filter(
        Assignment.caretaker_id == principal.user_id,
        Assignment.status == AssignmentStatus.ACTIVE.value,
    ).order_by(Assignment.assigned_at.desc()).all()


def get_patient_assignments(db: Session, principal: Principal) -> list[Assignment]:
    """The calling patient's active assignments, for the permissions screen."""
    permission_service.require_any_role(principal, [Role.PATIENT])
    return _with_accounts(db.query(Assignment)).filter(
        Assignment.patient_id == principal.user_id,
        Assignment.status == AssignmentStatus.ACTIVE.value,
    ).order_by(Assignment.assigned_at.desc()).all()
