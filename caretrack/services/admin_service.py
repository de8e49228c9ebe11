"""Dashboard statistics for admins and caretakers."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from caretrack.core.config import settings
from caretrack.core.exceptions import NotFoundError
from caretrack.db.enums import AssignmentStatus, Capability, Role
from caretrack.db.models import Assignment, CheckIn, UserAccount
from caretrack.schemas.auth import Principal
from caretrack.services import checkin_service, metrics_service, permission_service

RECENT_CHECKIN_DAYS = 7


@dataclass(frozen=True)
class AdminDashboardStats:
    total_patients: int
    total_caretakers: int
    total_assignments: int
    active_assignments: int
    recent_checkins: int


@dataclass(frozen=True)
class CaretakerDashboardStats:
    total_checkins: int
    week_checkins: int
    patients_visible: int


def _count_accounts(db: Session, role: Role) -> int:
    return db.query(func.count(UserAccount.id)).filter(
        UserAccount.role == role.value
    ).scalar() or 0


def list_accounts(db: Session, principal: Principal, role: Role) -> list[UserAccount]:
    """Accounts with the given role, newest first (admin only)."""
    permission_service.require_admin(principal)
    return (
        db.query(UserAccount)
        .filter(UserAccount.role == role.value)
        .order_by(UserAccount.created_at.desc())
        .all()
    )


def get_admin_dashboard_stats(db: Session, principal: Principal) -> AdminDashboardStats:
    permission_service.require_admin(principal)
    since = datetime.now(timezone.utc) - timedelta(days=RECENT_CHECKIN_DAYS)

    total_assignments = db.query(func.count(Assignment.id)).scalar() or 0
    active_assignments = db.query(func.count(Assignment.id)).filter(
        Assignment.status == AssignmentStatus.ACTIVE.value
    ).scalar() or 0
    recent_checkins = db.query(func.count(CheckIn.id)).filter(
        CheckIn.created_at >= since
    ).scalar() or 0

    return AdminDashboardStats(
        total_patients=_count_accounts(db, Role.PATIENT),
        total_caretakers=_count_accounts(db, Role.CARETAKER),
        total_assignments=total_assignments,
        active_assignments=active_assignments,
        recent_checkins=recent_checkins,
    )


def get_patient_detail_stats(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    today: date | None = None,
) -> metrics_service.PatientDetailStats:
    """All-time statistics for one patient (admin view)."""
    permission_service.require_admin(principal)
    patient = db.query(UserAccount).filter(UserAccount.id == patient_id).first()
    if not permission_service.account_has_role(patient, Role.PATIENT):
        raise NotFoundError("Patient not found")

    checkins = checkin_service.list_checkins(db, patient_id)
    return metrics_service.patient_detail_stats(
        checkins,
        registered_at=patient.created_at,
        today=today or date.today(),
        top_n=settings.SIDE_EFFECT_TOP_N,
    )


def get_caretaker_dashboard_stats(
    db: Session,
    principal: Principal,
    today: date | None = None,
) -> CaretakerDashboardStats:
    """Check-in counts across the patients this caretaker may view."""
    patient_ids = permission_service.caretaker_patient_ids(db, principal, Capability.VIEW_DATA)
    if not patient_ids:
        return CaretakerDashboardStats(total_checkins=0, week_checkins=0, patients_visible=0)

    week_start = metrics_service.start_of_week(today or date.today())
    base = db.query(func.count(CheckIn.id)).filter(CheckIn.user_id.in_(patient_ids))
    total = base.scalar() or 0
    this_week = base.filter(CheckIn.check_in_date >= week_start).scalar() or 0

    return CaretakerDashboardStats(
        total_checkins=total,
        week_checkins=this_week,
        patients_visible=len(patient_ids),
    )
