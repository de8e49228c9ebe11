"""AI insight endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from caretrack.core.deps import get_current_principal, get_db, require_csrf_header
from caretrack.core.rate_limit import insights_limit, limiter
from caretrack.schemas.auth import Principal
from caretrack.schemas.insight import (
    InsightListResponse,
    InsightRead,
    InsightRequest,
    LatestInsightResponse,
)
from caretrack.services import insight_service
from caretrack.services.insight_generator import InsightGenerator, get_insight_generator
from caretrack.services.permission_service import Restricted

router = APIRouter(prefix="/patients/{patient_id}/insights", tags=["insights"])


@router.post(
    "",
    response_model=InsightRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(insights_limit)
async def generate_insight(
    request: Request,  # Required by limiter
    patient_id: UUID,
    body: InsightRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    generator: InsightGenerator = Depends(get_insight_generator),
):
    """Generate and store a new insight. A failed attempt stores nothing."""
    record = await insight_service.request_insight(
        db, principal, patient_id, body.time_range.value, generator
    )
    db.commit()
    db.refresh(record)
    return record


@router.get("/latest", response_model=LatestInsightResponse)
async def get_latest_insight(
    patient_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = insight_service.get_latest_insight_for_viewer(db, principal, patient_id)
    if isinstance(result, Restricted):
        return LatestInsightResponse(patient_id=patient_id, restricted=True, reason=result.reason)
    return LatestInsightResponse(
        patient_id=patient_id,
        insight=InsightRead.model_validate(result) if result else None,
    )


@router.get("", response_model=InsightListResponse)
async def list_insights(
    patient_id: UUID,
    start: date | None = Query(None),
    end: date | None = Query(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    result = insight_service.list_insights_for_viewer(db, principal, patient_id, start, end)
    if isinstance(result, Restricted):
        return InsightListResponse(patient_id=patient_id, restricted=True, reason=result.reason)
    return InsightListResponse(
        patient_id=patient_id,
        insights=[InsightRead.model_validate(r) for r in result],
    )
