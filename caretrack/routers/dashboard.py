"""Dashboard statistics endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from caretrack.core.deps import get_db, require_roles
from caretrack.db.enums import Role
from caretrack.schemas.auth import Principal
from caretrack.schemas.metrics import (
    AccountRead,
    AdminDashboardStatsRead,
    CaretakerDashboardStatsRead,
    PatientDetailStatsRead,
)
from caretrack.services import admin_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/admin", response_model=AdminDashboardStatsRead)
async def admin_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles([Role.ADMIN])),
):
    return admin_service.get_admin_dashboard_stats(db, principal)


@router.get("/admin/patients", response_model=list[AccountRead])
async def admin_list_patients(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles([Role.ADMIN])),
):
    return admin_service.list_accounts(db, principal, Role.PATIENT)


@router.get("/admin/caretakers", response_model=list[AccountRead])
async def admin_list_caretakers(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles([Role.ADMIN])),
):
    return admin_service.list_accounts(db, principal, Role.CARETAKER)


@router.get("/admin/patients/{patient_id}", response_model=PatientDetailStatsRead)
async def admin_patient_stats(
    patient_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles([Role.ADMIN])),
):
    return admin_service.get_patient_detail_stats(db, principal, patient_id)


@router.get("/caretaker", response_model=CaretakerDashboardStatsRead)
async def caretaker_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_roles([Role.CARETAKER])),
):
    return admin_service.get_caretaker_dashboard_stats(db, principal)
