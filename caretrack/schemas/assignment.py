"""Assignment and capability-flag schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from caretrack.db.enums import AssignmentStatus, Capability


class AssignmentCreate(BaseModel):
    patient_id: UUID
    caretaker_id: UUID
    notes: str | None = Field(None, max_length=2000)


class AssignmentStatusUpdate(BaseModel):
    status: AssignmentStatus


class CapabilityUpdate(BaseModel):
    """Single-flag update; flags are written independently."""
    capability: Capability
    enabled: bool


class AssignmentRead(BaseModel):
    id: UUID
    patient_id: UUID
    patient_name: str | None = None
    patient_email: str | None = None
    caretaker_id: UUID
    caretaker_name: str | None = None
    caretaker_email: str | None = None
    assigned_by_user_id: UUID | None
    assigned_by_name: str | None = None
    assigned_at: datetime
    status: AssignmentStatus
    notes: str | None
    can_view_data: bool
    can_log_on_behalf: bool
    can_generate_reports: bool


class CapabilityUpdateResponse(BaseModel):
    assignment: AssignmentRead
    capability: Capability
    previous: bool
    enabled: bool
