"""SQLAlchemy ORM models for accounts, invitations, assignments, check-ins and insights."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caretrack.db.base import Base
from caretrack.db.enums import AssignmentStatus, InvitationStatus

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Accounts
# =============================================================================

class UserAccount(Base):
    """
    Application account.

    Identity is established by the external identity provider; this row is
    the reference data (role, name, contact) the core reads.
    """

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


# =============================================================================
# Invitations
# =============================================================================

class Invitation(Base):
    """
    Single-use token reserving an email for caretaker self-registration.

    Constraint: One pending invitation per email.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index(
            "uq_pending_invitation_email",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("idx_invitations_invited_by", "invited_by_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    invited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    invited_by_role: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=InvitationStatus.PENDING.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    accepted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )


# =============================================================================
# Assignments
# =============================================================================

class Assignment(Base):
    """
    Patient-caretaker relationship with lifecycle status and capability flags.

    Constraint: at most one ACTIVE row per (patient_id, caretaker_id).
    Flags start false and only the owning patient changes them.
    """

    __tablename__ = "assignments"
    __table_args__ = (
        Index(
            "uq_active_assignment_pair",
            "patient_id",
            "caretaker_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_assignments_caretaker", "caretaker_id", "status"),
        Index("idx_assignments_patient", "patient_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    caretaker_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    assigned_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    assigned_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=AssignmentStatus.ACTIVE.value, nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Capability flags (patient-controlled)
    can_view_data: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    can_log_on_behalf: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    can_generate_reports: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )

    # Relationships
    patient: Mapped[UserAccount] = relationship(foreign_keys=[patient_id])
    caretaker: Mapped[UserAccount] = relationship(foreign_keys=[caretaker_id])
    assigned_by: Mapped[UserAccount | None] = relationship(foreign_keys=[assigned_by_user_id])


# =============================================================================
# Check-ins
# =============================================================================

class CheckIn(Base):
    """
    One patient's daily symptom/medication record.

    Constraint: UNIQUE(user_id, check_in_date); writes are upserts.
    """

    __tablename__ = "checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "check_in_date", name="uq_checkins_user_date"),
        CheckConstraint("tremor_score BETWEEN 0 AND 10", name="ck_checkins_tremor"),
        CheckConstraint("stiffness_score BETWEEN 0 AND 10", name="ck_checkins_stiffness"),
        CheckConstraint("balance_score BETWEEN 0 AND 10", name="ck_checkins_balance"),
        CheckConstraint("sleep_score BETWEEN 0 AND 10", name="ck_checkins_sleep"),
        CheckConstraint("mood_score BETWEEN 0 AND 10", name="ck_checkins_mood"),
        CheckConstraint(
            "medication_taken IN ('yes', 'partially', 'missed')",
            name="ck_checkins_medication_taken",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)

    tremor_score: Mapped[int] = mapped_column(Integer, nullable=False)
    stiffness_score: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_score: Mapped[int] = mapped_column(Integer, nullable=False)
    sleep_score: Mapped[int] = mapped_column(Integer, nullable=False)
    mood_score: Mapped[int] = mapped_column(Integer, nullable=False)

    medication_taken: Mapped[str] = mapped_column(String(20), nullable=False)
    side_effects: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    side_effects_other: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Who performed the last write (patient, caretaker on behalf, or admin)
    logged_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


# =============================================================================
# Insights
# =============================================================================

class InsightRecord(Base):
    """
    Immutable snapshot produced by the external insight generator.

    Append-only: rows are never updated. "Latest" is max(created_at) per user.
    """

    __tablename__ = "insights"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    insight_type: Mapped[str] = mapped_column(String(20), nullable=False)
    date_range_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_range_end: Mapped[date] = mapped_column(Date, nullable=False)

    summary: Mapped[str] = mapped_column(Text, nullable=False)
    key_observations: Mapped[dict] = mapped_column(JSONType, nullable=False)
    medication_patterns: Mapped[str] = mapped_column(Text, nullable=False)
    symptom_trends: Mapped[str] = mapped_column(Text, nullable=False)
    wearing_off_patterns: Mapped[str] = mapped_column(Text, nullable=False)
    recommendations: Mapped[list] = mapped_column(JSONType, nullable=False)
    data_points_analyzed: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


Index(
    "idx_insights_user_created",
    InsightRecord.user_id,
    InsightRecord.created_at.desc(),
)
