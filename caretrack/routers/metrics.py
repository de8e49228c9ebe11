"""Window metrics endpoint."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from caretrack.core.config import settings
from caretrack.core.deps import get_current_principal, get_db
from caretrack.db.enums import TimeWindow
from caretrack.schemas.auth import Principal
from caretrack.schemas.metrics import CheckInSummaryRead, MetricsResponse
from caretrack.services import checkin_service
from caretrack.services.permission_service import Restricted

router = APIRouter(prefix="/patients/{patient_id}/metrics", tags=["metrics"])


@router.get("", response_model=MetricsResponse)
async def get_metrics(
    patient_id: UUID,
    window: TimeWindow = Query(TimeWindow.LAST_7_DAYS),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Averages, adherence, side effects and daily series for a window."""
    result = checkin_service.get_patient_summary(
        db, principal, patient_id, window, settings.SIDE_EFFECT_TOP_N
    )
    if isinstance(result, Restricted):
        return MetricsResponse(patient_id=patient_id, restricted=True, reason=result.reason)
    return MetricsResponse(
        patient_id=patient_id,
        summary=CheckInSummaryRead.model_validate(result),
    )
