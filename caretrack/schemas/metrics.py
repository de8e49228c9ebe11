"""Metrics response schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel


class SymptomAveragesRead(BaseModel):
    tremor: float
    stiffness: float
    balance: float
    sleep: float
    mood: float

    model_config = {"from_attributes": True}


class MedicationBreakdownRead(BaseModel):
    taken: int
    partially: int
    missed: int

    model_config = {"from_attributes": True}


class SideEffectCountRead(BaseModel):
    name: str
    count: int

    model_config = {"from_attributes": True}


class DailyPointRead(BaseModel):
    check_in_date: date
    tremor: int
    stiffness: int
    balance: int
    sleep: int
    mood: int
    medication_taken: str

    model_config = {"from_attributes": True}


class CheckInSummaryRead(BaseModel):
    window: str
    start_date: date
    end_date: date
    total_checkins: int
    averages: SymptomAveragesRead | None
    medication_adherence: int | None
    medication: MedicationBreakdownRead
    top_side_effects: list[SideEffectCountRead]
    series: list[DailyPointRead]

    model_config = {"from_attributes": True}


class MetricsResponse(BaseModel):
    patient_id: UUID
    restricted: bool = False
    reason: str | None = None
    summary: CheckInSummaryRead | None = None


class PatientDetailStatsRead(BaseModel):
    total_checkins: int
    missed_days: int
    medication_adherence: int | None
    days_since_registration: int
    averages: SymptomAveragesRead | None
    most_common_side_effects: list[SideEffectCountRead]

    model_config = {"from_attributes": True}


class AdminDashboardStatsRead(BaseModel):
    total_patients: int
    total_caretakers: int
    total_assignments: int
    active_assignments: int
    recent_checkins: int

    model_config = {"from_attributes": True}


class CaretakerDashboardStatsRead(BaseModel):
    total_checkins: int
    week_checkins: int
    patients_visible: int

    model_config = {"from_attributes": True}


class AccountRead(BaseModel):
    id: UUID
    full_name: str
    email: str
    phone: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
