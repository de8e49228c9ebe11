"""Check-in schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt

from caretrack.db.enums import MedicationTaken


class CheckInUpsert(BaseModel):
    """
    Full replacement payload for one (patient, date) check-in.

    Omitted optional fields are cleared on overwrite; writes never merge.
    """
    check_in_date: date
    tremor_score: StrictInt = Field(..., ge=0, le=10)
    stiffness_score: StrictInt = Field(..., ge=0, le=10)
    balance_score: StrictInt = Field(..., ge=0, le=10)
    sleep_score: StrictInt = Field(..., ge=0, le=10)
    mood_score: StrictInt = Field(..., ge=0, le=10)
    medication_taken: MedicationTaken
    side_effects: list[str] = Field(default_factory=list, max_length=50)
    side_effects_other: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=5000)


class CheckInRead(BaseModel):
    id: UUID
    user_id: UUID
    check_in_date: date
    tremor_score: int
    stiffness_score: int
    balance_score: int
    sleep_score: int
    mood_score: int
    medication_taken: MedicationTaken
    side_effects: list[str]
    side_effects_other: str | None
    notes: str | None
    logged_by_user_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CheckInListResponse(BaseModel):
    """
    Viewer read result.

    restricted=True means the caller is not allowed to see this patient's
    data; it is never used to signal "no check-ins yet".
    """
    patient_id: UUID
    restricted: bool = False
    reason: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    checkins: list[CheckInRead] = []


class CheckInDayResponse(BaseModel):
    patient_id: UUID
    restricted: bool = False
    reason: str | None = None
    check_in_date: date
    checkin: CheckInRead | None = None
