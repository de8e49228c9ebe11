"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Account roles.

    - PATIENT: owns check-ins and the capability flags on their assignments
    - CARETAKER: monitors patients through assignments
    - ADMIN: manages accounts and assignments
    """
    PATIENT = "patient"
    CARETAKER = "caretaker"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MedicationTaken(str, Enum):
    YES = "yes"
    PARTIALLY = "partially"
    MISSED = "missed"


class Capability(str, Enum):
    """Per-assignment capability flags a patient grants to a caretaker."""
    VIEW_DATA = "can_view_data"
    LOG_ON_BEHALF = "can_log_on_behalf"
    GENERATE_REPORTS = "can_generate_reports"


class InsightType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class TimeWindow(str, Enum):
    """
    Check-in windows offered to users.

    Values double as the human-readable range labels sent to the
    insight generator.
    """
    TODAY = "today"
    LAST_7_DAYS = "7days"
    LAST_30_DAYS = "30days"
    LAST_90_DAYS = "90days"

    @property
    def days(self) -> int:
        return WINDOW_DAYS[self]

    @property
    def insight_type(self) -> InsightType:
        return WINDOW_INSIGHT_TYPES[self]

    @property
    def description(self) -> str:
        return WINDOW_DESCRIPTIONS[self]


WINDOW_DAYS = {
    TimeWindow.TODAY: 0,
    TimeWindow.LAST_7_DAYS: 7,
    TimeWindow.LAST_30_DAYS: 30,
    TimeWindow.LAST_90_DAYS: 90,
}

WINDOW_INSIGHT_TYPES = {
    TimeWindow.TODAY: InsightType.DAILY,
    TimeWindow.LAST_7_DAYS: InsightType.WEEKLY,
    TimeWindow.LAST_30_DAYS: InsightType.MONTHLY,
    TimeWindow.LAST_90_DAYS: InsightType.QUARTERLY,
}

WINDOW_DESCRIPTIONS = {
    TimeWindow.TODAY: "Today",
    TimeWindow.LAST_7_DAYS: "Last 7 days",
    TimeWindow.LAST_30_DAYS: "Last 30 days",
    TimeWindow.LAST_90_DAYS: "Last 90 days",
}

SCORE_MIN = 0
SCORE_MAX = 10
SYMPTOM_FIELDS = ("tremor", "stiffness", "balance", "sleep", "mood")
