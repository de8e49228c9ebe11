"""Check-in endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db, require_csrf_header
from caretrack.db.enums import TimeWindow
from caretrack.schemas.auth import Principal
from caretrack.schemas.checkin import (
    CheckInDayResponse,
    CheckInListResponse,
    CheckInRead,
    CheckInUpsert,
)
from caretrack.services import checkin_service
from caretrack.services.checkin_service import CheckInFields
from caretrack.services.permission_service import Restricted

router = APIRouter(tags=["checkins"])


def _day_response(patient_id: UUID, check_in_date: date, result) -> CheckInDayResponse:
    if isinstance(result, Restricted):
        return CheckInDayResponse(
            patient_id=patient_id,
            restricted=True,
            reason=result.reason,
            check_in_date=check_in_date,
        )
    return CheckInDayResponse(
        patient_id=patient_id,
        check_in_date=check_in_date,
        checkin=CheckInRead.model_validate(result) if result else None,
    )


@router.put(
    "/patients/{patient_id}/checkins",
    response_model=CheckInRead,
    dependencies=[Depends(require_csrf_header)],
)
async def upsert_checkin(
    patient_id: UUID,
    body: CheckInUpsert,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Create or replace the check-in for a date."""
    fields = CheckInFields(
        tremor_score=body.tremor_score,
        stiffness_score=body.stiffness_score,
        balance_score=body.balance_score,
        sleep_score=body.sleep_score,
        mood_score=body.mood_score,
        medication_taken=body.medication_taken,
        side_effects=body.side_effects,
        side_effects_other=body.side_effects_other,
        notes=body.notes,
    )
    checkin = checkin_service.upsert_checkin(db, principal, patient_id, body.check_in_date, fields)
    db.commit()
    db.refresh(checkin)
    return checkin


@router.get("/patients/{patient_id}/checkins", response_model=CheckInListResponse)
async def list_checkins(
    patient_id: UUID,
    window: TimeWindow = Query(TimeWindow.LAST_7_DAYS),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Check-ins in a window; restricted=true when the viewer lacks access."""
    result = checkin_service.list_checkins_for_viewer(db, principal, patient_id, window)
    if isinstance(result, Restricted):
        return CheckInListResponse(patient_id=patient_id, restricted=True, reason=result.reason)
    return CheckInListResponse(
        patient_id=patient_id,
        start_date=result.start_date,
        end_date=result.end_date,
        checkins=[CheckInRead.model_validate(c) for c in result.checkins],
    )


@router.get("/patients/{patient_id}/checkins/today", response_model=CheckInDayResponse)
async def get_today_checkin(
    patient_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    today = date.today()
    result = checkin_service.get_today_checkin(db, principal, patient_id, today)
    return _day_response(patient_id, today, result)


@router.get("/patients/{patient_id}/checkins/{check_in_date}", response_model=CheckInDayResponse)
async def get_checkin(
    patient_id: UUID,
    check_in_date: date,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = checkin_service.get_checkin_for_viewer(db, principal, patient_id, check_in_date)
    return _day_response(patient_id, check_in_date, result)


@router.delete(
    "/checkins/{checkin_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_checkin(
    checkin_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Remove a check-in (admin data correction)."""
    checkin_service.delete_checkin(db, principal, checkin_id)
    db.commit()
    return Response(status_code=204)
