"""Patient report export endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db
from caretrack.core.rate_limit import limiter, reports_limit
from caretrack.db.enums import TimeWindow
from caretrack.schemas.auth import Principal
from caretrack.services import report_service

router = APIRouter(prefix="/patients/{patient_id}/reports", tags=["reports"])


@router.get("/checkins.csv", response_class=Response)
@limiter.limit(reports_limit)
async def export_checkins(
    request: Request,
    patient_id: UUID,
    window: TimeWindow = Query(TimeWindow.LAST_30_DAYS),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> Response:
    """Check-ins and summary for the window (CSV)."""
    report = report_service.build_patient_report(db, principal, patient_id, window)
    headers = {"Content-Disposition": f'attachment; filename="{report.filename}"'}
    return Response(content=report.content, media_type="text/csv", headers=headers)
