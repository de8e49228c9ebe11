"""Insight cache: append-only snapshots from the external insight generator."""

import asyncio
import logging
from datetime import date
from typing import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from caretrack.core.config import settings
from caretrack.core.exceptions import CareTrackError, ExternalServiceError, ValidationError
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import Capability, TimeWindow
from caretrack.db.models import CheckIn, InsightRecord
from caretrack.schemas.auth import Principal
from caretrack.services import checkin_service, metrics_service, permission_service
from caretrack.services.insight_generator import InsightGenerator, ensure_disclaimer
from caretrack.services.permission_service import Restricted

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No check-in data available for analysis"


def parse_time_window(label: str) -> TimeWindow:
    try:
        return TimeWindow(label)
    except ValueError:
        allowed = ", ".join(w.value for w in TimeWindow)
        raise ValidationError(f"Unknown time range '{label}'. Expected one of: {allowed}")


async def generate_and_store(
    db: Session,
    user_id: UUID,
    checkins: Sequence[CheckIn],
    window: TimeWindow,
    generator: InsightGenerator,
    timeout: float | None = None,
) -> InsightRecord:
    """
    Run the generator once and persist its output as a new snapshot.

    Nothing is written unless the generator succeeds, so the previous
    latest snapshot stays in place on failure.

    Raises:
        ValidationError: no check-ins to analyze
        ExternalServiceError: generator failed or timed out
    """
    if not checkins:
        raise ValidationError(NO_DATA_MESSAGE)

    log_context = build_log_context(patient_id=user_id)
    try:
        payload = await asyncio.wait_for(
            generator.generate(checkins, window),
            timeout=timeout or settings.INSIGHT_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.warning("Insight generation timed out", extra=log_context)
        raise ExternalServiceError("Insight generation timed out")
    except CareTrackError:
        raise
    except Exception as exc:
        logger.warning(
            "Insight generation failed: %s", exc.__class__.__name__, extra=log_context
        )
        raise ExternalServiceError("Failed to generate AI insights") from exc

    dates = [c.check_in_date for c in checkins]
    record = InsightRecord(
        user_id=user_id,
        insight_type=window.insight_type.value,
        date_range_start=min(dates),
        date_range_end=max(dates),
        summary=payload.summary,
        key_observations=payload.key_observations.model_dump(),
        medication_patterns=payload.medication_patterns,
        symptom_trends=payload.symptom_trends,
        wearing_off_patterns=ensure_disclaimer(payload.wearing_off_patterns),
        recommendations=list(payload.recommendations),
        data_points_analyzed=len(checkins),
    )
    db.add(record)
    db.flush()
    logger.info("Insight %s stored", record.insight_type, extra=log_context)
    return record


async def request_insight(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    time_range: str,
    generator: InsightGenerator,
    today: date | None = None,
) -> InsightRecord:
    """Generate an insight over the patient's check-ins in the named window."""
    window = parse_time_window(time_range)
    permission_service.require_patient_access(db, principal, patient_id, [Capability.VIEW_DATA])
    start_date, end_date = metrics_service.window_bounds(window, today or date.today())
    checkins = checkin_service.list_checkins(db, patient_id, start_date, end_date)
    return await generate_and_store(db, patient_id, checkins, window, generator)


def get_latest_insight(db: Session, user_id: UUID) -> InsightRecord | None:
    return db.query(InsightRecord).filter(
        InsightRecord.user_id == user_id
    ).order_by(InsightRecord.created_at.desc()).first()


def list_insights(
    db: Session,
    user_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[InsightRecord]:
    """Snapshots newest first; the optional range must contain the snapshot's range."""
    query = db.query(InsightRecord).filter(InsightRecord.user_id == user_id)
    if start_date is not None:
        query = query.filter(InsightRecord.date_range_start >= start_date)
    if end_date is not None:
        query = query.filter(InsightRecord.date_range_end <= end_date)
    return query.order_by(InsightRecord.created_at.desc()).all()


# =============================================================================
# Viewer reads (gated)
# =============================================================================

def get_latest_insight_for_viewer(
    db: Session,
    principal: Principal,
    patient_id: UUID,
) -> InsightRecord | None | Restricted:
    decision = permission_service.evaluate_patient_access(
        db, principal, patient_id, Capability.VIEW_DATA
    )
    if isinstance(decision, Restricted):
        return decision
    return get_latest_insight(db, patient_id)


def list_insights_for_viewer(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[InsightRecord] | Restricted:
    decision = permission_service.evaluate_patient_access(
        db, principal, patient_id, Capability.VIEW_DATA
    )
    if isinstance(decision, Restricted):
        return decision
    return list_insights(db, patient_id, start_date, end_date)
