"""Metrics aggregator.

Pure functions over a list of check-ins and a window. Nothing here touches
the database; callers load the rows and pass them in.

Rounding is half-up (2.25 -> 2.3, 69.5 -> 70) rather than Python's
banker's rounding.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from caretrack.db.enums import SYMPTOM_FIELDS, MedicationTaken, TimeWindow
from caretrack.db.models import CheckIn

ONE_DECIMAL = Decimal("0.1")
WHOLE = Decimal("1")


@dataclass(frozen=True)
class SymptomAverages:
    tremor: float
    stiffness: float
    balance: float
    sleep: float
    mood: float


@dataclass(frozen=True)
class MedicationBreakdown:
    taken: int
    partially: int
    missed: int

    @property
    def total(self) -> int:
        return self.taken + self.partially + self.missed


@dataclass(frozen=True)
class SideEffectCount:
    name: str
    count: int


@dataclass(frozen=True)
class DailyPoint:
    check_in_date: date
    tremor: int
    stiffness: int
    balance: int
    sleep: int
    mood: int
    medication_taken: str


@dataclass(frozen=True)
class CheckInSummary:
    window: str
    start_date: date
    end_date: date
    total_checkins: int
    averages: SymptomAverages | None
    medication_adherence: int | None
    medication: MedicationBreakdown
    top_side_effects: list[SideEffectCount]
    series: list[DailyPoint]


@dataclass(frozen=True)
class PatientDetailStats:
    total_checkins: int
    missed_days: int
    medication_adherence: int | None
    days_since_registration: int
    averages: SymptomAverages | None
    most_common_side_effects: list[SideEffectCount]


# =============================================================================
# Windows
# =============================================================================

def window_bounds(window: TimeWindow, today: date) -> tuple[date, date]:
    """Inclusive (start, end). "today" is a single day."""
    return today - timedelta(days=window.days), today


def start_of_week(today: date) -> date:
    """Weeks start on Sunday."""
    return today - timedelta(days=(today.weekday() + 1) % 7)


def in_window(checkins: Sequence[CheckIn], start: date, end: date) -> list[CheckIn]:
    return [c for c in checkins if start <= c.check_in_date <= end]


# =============================================================================
# Scalar statistics
# =============================================================================

def _round_half_up(value: Decimal, step: Decimal) -> Decimal:
    return value.quantize(step, rounding=ROUND_HALF_UP)


def symptom_averages(checkins: Sequence[CheckIn]) -> SymptomAverages | None:
    """Per-symptom mean to one decimal; None for an empty list."""
    if not checkins:
        return None
    count = Decimal(len(checkins))
    values = {}
    for name in SYMPTOM_FIELDS:
        total = sum(getattr(c, f"{name}_score") for c in checkins)
        values[name] = float(_round_half_up(Decimal(total) / count, ONE_DECIMAL))
    return SymptomAverages(**values)


def medication_breakdown(checkins: Sequence[CheckIn]) -> MedicationBreakdown:
    counts = Counter(c.medication_taken for c in checkins)
    return MedicationBreakdown(
        taken=counts[MedicationTaken.YES.value],
        partially=counts[MedicationTaken.PARTIALLY.value],
        missed=counts[MedicationTaken.MISSED.value],
    )


def medication_adherence(checkins: Sequence[CheckIn]) -> int | None:
    """Percent of check-ins with medication fully taken; None if empty."""
    breakdown = medication_breakdown(checkins)
    if breakdown.total == 0:
        return None
    ratio = Decimal(100 * breakdown.taken) / Decimal(breakdown.total)
    return int(_round_half_up(ratio, WHOLE))


def side_effect_frequency(checkins: Sequence[CheckIn], top_n: int) -> list[SideEffectCount]:
    """Top N tags by count; ties keep first-seen order."""
    counts: dict[str, int] = {}
    for checkin in checkins:
        for tag in checkin.side_effects or []:
            counts[tag] = counts.get(tag, 0) + 1
    # sorted() is stable, so equal counts stay in insertion order
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [SideEffectCount(name=name, count=count) for name, count in ranked[:top_n]]


def days_since_registration(registered_at: datetime, today: date) -> int:
    return max(0, (today - registered_at.date()).days)


def missed_days(days_registered: int, total_checkins: int) -> int:
    """Approximation: days registered minus check-ins, never negative."""
    return max(0, days_registered - total_checkins)


def daily_series(checkins: Sequence[CheckIn]) -> list[DailyPoint]:
    ordered = sorted(checkins, key=lambda c: c.check_in_date)
    return [
        DailyPoint(
            check_in_date=c.check_in_date,
            tremor=c.tremor_score,
            stiffness=c.stiffness_score,
            balance=c.balance_score,
            sleep=c.sleep_score,
            mood=c.mood_score,
            medication_taken=c.medication_taken,
        )
        for c in ordered
    ]


# =============================================================================
# Summaries
# =============================================================================

def summarize(
    checkins: Sequence[CheckIn],
    window: TimeWindow,
    today: date,
    top_n: int,
) -> CheckInSummary:
    start, end = window_bounds(window, today)
    selected = in_window(checkins, start, end)
    return CheckInSummary(
        window=window.value,
        start_date=start,
        end_date=end,
        total_checkins=len(selected),
        averages=symptom_averages(selected),
        medication_adherence=medication_adherence(selected),
        medication=medication_breakdown(selected),
        top_side_effects=side_effect_frequency(selected, top_n),
        series=daily_series(selected),
    )


def patient_detail_stats(
    checkins: Sequence[CheckIn],
    registered_at: datetime,
    today: date,
    top_n: int,
) -> PatientDetailStats:
    """All-time statistics for one patient."""
    registered_days = days_since_registration(registered_at, today)
    return PatientDetailStats(
        total_checkins=len(checkins),
        missed_days=missed_days(registered_days, len(checkins)),
        medication_adherence=medication_adherence(checkins),
        days_since_registration=registered_days,
        averages=symptom_averages(checkins),
        most_common_side_effects=side_effect_frequency(checkins, top_n),
    )
