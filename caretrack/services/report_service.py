"""Patient report export (CSV)."""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from caretrack.core.config import settings
from caretrack.core.structured_logging import build_log_context
from caretrack.db.enums import Capability, TimeWindow
from caretrack.db.models import CheckIn, UserAccount
from caretrack.schemas.auth import Principal
from caretrack.services import checkin_service, metrics_service, permission_service

logger = logging.getLogger(__name__)

CSV_DANGEROUS_PREFIXES = ("=", "+", "-", "@", "\t", "\r")

CHECKIN_HEADERS = [
    "date",
    "tremor",
    "stiffness",
    "balance",
    "sleep",
    "mood",
    "medication_taken",
    "side_effects",
    "side_effects_other",
    "notes",
]


@dataclass
class PatientReport:
    filename: str
    content: str


def _csv_safe(value: str) -> str:
    if value and value.startswith(CSV_DANGEROUS_PREFIXES):
        return f"'{value}"
    return value


def _serialize_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return str(value)


def _write_rows(writer, rows: Iterable[Sequence[Any]]) -> None:
    for row in rows:
        writer.writerow([_csv_safe(_serialize_csv_value(value)) for value in row])


def _checkin_rows(checkins: Sequence[CheckIn]) -> list[list[Any]]:
    return [
        [
            c.check_in_date,
            c.tremor_score,
            c.stiffness_score,
            c.balance_score,
            c.sleep_score,
            c.mood_score,
            c.medication_taken,
            c.side_effects,
            c.side_effects_other,
            c.notes,
        ]
        for c in checkins
    ]


def _summary_rows(summary: metrics_service.CheckInSummary) -> list[list[Any]]:
    rows: list[list[Any]] = [
        ["window", summary.window],
        ["start_date", summary.start_date],
        ["end_date", summary.end_date],
        ["total_checkins", summary.total_checkins],
        ["medication_adherence_pct", summary.medication_adherence],
        ["medication_taken", summary.medication.taken],
        ["medication_partially", summary.medication.partially],
        ["medication_missed", summary.medication.missed],
    ]
    if summary.averages:
        rows.extend(
            [
                ["avg_tremor", summary.averages.tremor],
                ["avg_stiffness", summary.averages.stiffness],
                ["avg_balance", summary.averages.balance],
                ["avg_sleep", summary.averages.sleep],
                ["avg_mood", summary.averages.mood],
            ]
        )
    for item in summary.top_side_effects:
        rows.append(["side_effect", item.name, item.count])
    return rows


def build_patient_report(
    db: Session,
    principal: Principal,
    patient_id: UUID,
    window: TimeWindow,
    today: date | None = None,
) -> PatientReport:
    """
    CSV of the window's check-ins followed by summary rows.

    Caretakers need both report generation and data viewing on the
    assignment; a missing flag is a NotAuthorizedError.
    """
    permission_service.require_patient_access(
        db,
        principal,
        patient_id,
        [Capability.GENERATE_REPORTS, Capability.VIEW_DATA],
    )
    today = today or date.today()
    start_date, end_date = metrics_service.window_bounds(window, today)
    checkins = checkin_service.list_checkins(db, patient_id, start_date, end_date)
    summary = metrics_service.summarize(checkins, window, today, settings.SIDE_EFFECT_TOP_N)
    patient = db.query(UserAccount).filter(UserAccount.id == patient_id).first()

    output = io.StringIO()
    writer = csv.writer(output)
    _write_rows(writer, [["patient", patient.full_name if patient else ""]])
    writer.writerow([])
    writer.writerow(CHECKIN_HEADERS)
    _write_rows(writer, _checkin_rows(checkins))
    writer.writerow([])
    writer.writerow(["metric", "value", "count"])
    _write_rows(writer, _summary_rows(summary))

    logger.info(
        "Report generated (%s rows)",
        len(checkins),
        extra=build_log_context(user_id=principal.user_id, patient_id=patient_id),
    )
    return PatientReport(
        filename=f"checkins_{window.value}_{end_date.isoformat()}.csv",
        content=output.getvalue(),
    )
