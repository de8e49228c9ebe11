"""Check-in store: one record per patient per calendar date."""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caretrack.core.exceptions import NotFoundError, ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import (
    SCORE_MAX,
    SCORE_MIN,
    SYMPTOM_FIELDS,
    Capability,
    MedicationTaken,
    TimeWindow,
)
from caretrack.db.models import CheckIn
from caretrack.schemas.auth import Principal
from caretrack.services import metrics_service, permission_service
from caretrack.services.permission_service import Restricted

logger = logging.getLogger(__name__)

SCORE_COLUMNS = tuple(f"{name}_score" for name in SYMPTOM_FIELDS)


@dataclass
class CheckInFields:
    """Everything a write sets. A write replaces all of these."""

    tremor_score: Any
    stiffness_score: Any
    balance_score: Any
    sleep_score: Any
    mood_score: Any
    medication_taken: Any
    side_effects: list[str] = field(default_factory=list)
    side_effects_other: str | None = None
    notes: str | None = None


@dataclass
class CheckInWindow:
    start_date: date
    end_date: date
    checkins: list[CheckIn]


# =============================================================================
# Boundary validation
# =============================================================================

def _validate_score(name: str, value: Any) -> int:
    # bool is an int subclass; True must not pass as 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer")
    if not SCORE_MIN <= value <= SCORE_MAX:
        raise ValidationError(f"{name} must be between {SCORE_MIN} and {SCORE_MAX}")
    return value


def _validate_medication(value: Any) -> str:
    if isinstance(value, MedicationTaken):
        return value.value
    allowed = [m.value for m in MedicationTaken]
    if value not in allowed:
        raise ValidationError(f"medication_taken must be one of {', '.join(allowed)}")
    return value


def _normalize_side_effects(values: Iterable[str] | None) -> list[str]:
    """Set semantics with first-seen order kept."""
    seen: dict[str, None] = {}
    for value in values or []:
        if not isinstance(value, str):
            raise ValidationError("side_effects must be strings")
        tag = value.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_fields(fields: CheckInFields) -> CheckInFields:
    """Validate and normalize a write. Applied on every path into the store."""
    scores = {column: _validate_score(column, getattr(fields, column)) for column in SCORE_COLUMNS}
    return CheckInFields(
        **scores,
        medication_taken=_validate_medication(fields.medication_taken),
        side_effects=_normalize_side_effects(fields.side_effects),
        side_effects_other=_optional_text(fields.side_effects_other),
        notes=_optional_text(fields.notes),
    )


# =============================================================================
# Store operations
# =============================================================================

def get_checkin(db: Session, user_id: UUID, check_in_date: date) -> CheckIn | None:
    return db.query(CheckIn).filter(
        CheckIn.user_id == user_id,
        CheckIn.check_in_date == check_in_date,
    ).first()


def list_checkins(
    db: Session,
    user_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[CheckIn]:
    """Check-ins for a user ordered by date ascending; bounds are inclusive."""
    query = db.query(CheckIn).filter(CheckIn.user_id == user_id)
    if start_date is not None:
        query = query.filter(CheckIn.check_in_date >= start_date)
    if end_date is not None:
        query = query.filter(CheckIn.check_in_date <= end_date)
    return query.order_by(CheckIn.check_in_date.asc()).all()


def _apply(checkin: CheckIn, fields: CheckInFields, logged_by: UUID) -> None:
    for column in SCORE_COLUMNS:
        setattr(checkin, column, getattr(fields, column))
    checkin.medication_taken = fields.medication_taken
    checkin.side_effects = list(fields.side_effects)
    checkin.side_effects_other = fields.side_effects_other
    checkin.notes = fields.notes
    checkin.logged_by_user_id = logged_by


def upsert_checkin(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    check_in_date: date,
    fields: CheckInFields,
) -> CheckIn:
    """
    Write the check-in for (patient, date); a second write replaces the first.

    Raises:
        NotAuthorizedError: caller may not log for this patient
        ValidationError: a score or medication value is out of domain
    """
    grant = permission_service.require_patient_access(
        db, principal, patient_id, [Capability.LOG_ON_BEHALF]
    )
    fields = validate_fields(fields)

    checkin = get_checkin(db, patient_id, check_in_date)
    if checkin is None:
        checkin = CheckIn(user_id=patient_id, check_in_date=check_in_date)
        _apply(checkin, fields, grant.actor_id)
        db.add(checkin)
        try:
            db.flush()
        except IntegrityError:
            # Lost an insert race for the same date; last write wins.
            db.rollback()
            checkin = get_checkin(db, patient_id, check_in_date)
            if checkin is None:
                raise
            _apply(checkin, fields, grant.actor_id)
            db.flush()
    else:
        _apply(checkin, fields, grant.actor_id)
        db.flush()

    logger.info(
        "Check-in saved for %s",
        check_in_date.isoformat(),
        extra=build_log_context(
            user_id=principal.user_id,
            patient_id=patient_id,
            assignment_id=grant.assignment_id,
        ),
    )
    return checkin


def delete_checkin(db: Session, principal: Principal, checkin_id: UUID) -> None:
    """Admin data correction."""
    permission_service.require_admin(principal)
    checkin = db.query(CheckIn).filter(CheckIn.id == checkin_id).first()
    if not checkin:
        raise NotFoundError("Check-in not found")
    patient_id = checkin.user_id
    db.delete(checkin)
    db.flush()
    logger.info(
        "Check-in deleted",
        extra=build_log_context(user_id=principal.user_id, patient_id=patient_id),
    )


# =============================================================================
# Viewer reads (gated)
# =============================================================================

def get_checkin_for_viewer(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    check_in_date: date,
) -> CheckIn | None | Restricted:
    decision = permission_service.evaluate_patient_access(
        db, principal, patient_id, Capability.VIEW_DATA
    )
    if isinstance(decision, Restricted):
        return decision
    return get_checkin(db, patient_id, check_in_date)


def get_today_checkin(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    today: date | None = None,
) -> CheckIn | None | Restricted:
    return get_checkin_for_viewer(db, principal, patient_id, today or date.today())


def list_checkins_for_viewer(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    window: TimeWindow,
    today: date | None = None,
) -> CheckInWindow | Restricted:
    """Check-ins in the window, or Restricted when the viewer lacks the flag."""
    decision = permission_service.evaluate_patient_access(
        db, principal, patient_id, Capability.VIEW_DATA
    )
    if isinstance(decision, Restricted):
        return decision
    start_date, end_date = metrics_service.window_bounds(window, today or date.today())
    return CheckInWindow(
        start_date=start_date,
        end_date=end_date,
        checkins=list_checkins(db, patient_id, start_date, end_date),
    )


def get_patient_summary(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    window: TimeWindow,
    top_n: int,
    today: date | None = None,
) -> metrics_service.CheckInSummary | Restricted:
    """Window metrics for a patient, or Restricted."""
    result = list_checkins_for_viewer(db, principal, patient_id, window, today)
    if isinstance(result, Restricted):
        return result
    return metrics_service.summarize(result.checkins, window, result.end_date, top_n)
