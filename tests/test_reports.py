"""Tests for the CSV report export."""
import csv
import io
from datetime import date, timedelta

import pytest

from caretrack.core.config import settings
from caretrack.core.exceptions import NotAuthorizedError
from caretrack.core.rate_limit import reports_limit
from caretrack.db.enums import TimeWindow
from caretrack.services import assignment_service, report_service


def _rows(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


@pytest.mark.asyncio
async def test_patient_exports_own_report(client, patient, auth, seed_checkin):
    today = date.today()
    seed_checkin(patient, today - timedelta(days=2), tremor_score=2, side_effects=["nausea", "dizziness"])
    seed_checkin(patient, today, tremor_score=4, medication_taken="missed")

    response = await client.get(
        f"/patients/{patient.id}/reports/checkins.csv",
        params={"window": "7days"},
        headers=auth(patient),
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert f'filename="checkins_7days_{today.isoformat()}.csv"' in response.headers["content-disposition"]

    rows = _rows(response.text)
    assert rows[0] == ["patient", "Pat Patient"]
    assert rows[2][0] == "date"
    assert rows[3][:2] == [(today - timedelta(days=2)).isoformat(), "2"]
    assert rows[3][7] == "nausea; dizziness"
    assert rows[4][6] == "missed"
    assert ["total_checkins", "2"] in rows
    assert ["medication_adherence_pct", "50"] in rows
    assert ["avg_tremor", "3.0"] in rows
    assert ["side_effect", "nausea", "1"] in rows


def test_report_neutralizes_formula_cells(db, patient, principal, seed_checkin):
    seed_checkin(patient, date(2026, 3, 2), notes="=HYPERLINK(\"http://evil\")", side_effects=["+cmd"])

    report = report_service.build_patient_report(
        db, principal(patient), patient.id, TimeWindow.LAST_7_DAYS, today=date(2026, 3, 3)
    )

    row = _rows(report.content)[3]
    assert row[9] == "'=HYPERLINK(\"http://evil\")"
    assert row[7] == "'+cmd"


def test_caretaker_needs_both_report_and_view_flags(db, admin, patient, caretaker, principal):
    assignment = assignment_service.create_assignment(db, principal(admin), patient.id, caretaker.id)
    assignment.can_generate_reports = True
    db.commit()

    with pytest.raises(NotAuthorizedError):
        report_service.build_patient_report(db, principal(caretaker), patient.id, TimeWindow.LAST_7_DAYS)

    assignment.can_view_data = True
    db.commit()

    report = report_service.build_patient_report(
        db, principal(caretaker), patient.id, TimeWindow.LAST_7_DAYS
    )
    assert _rows(report.content)[0] == ["patient", "Pat Patient"]


@pytest.mark.asyncio
async def test_caretaker_without_report_flag_gets_403(client, db, admin, patient, caretaker, auth, principal):
    assignment = assignment_service.create_assignment(db, principal(admin), patient.id, caretaker.id)
    assignment.can_view_data = True
    db.commit()

    response = await client.get(f"/patients/{patient.id}/reports/checkins.csv", headers=auth(caretaker))

    assert response.status_code == 403


def test_empty_window_report_has_headers_and_counts(db, patient, principal):
    report = report_service.build_patient_report(
        db, principal(patient), patient.id, TimeWindow.TODAY, today=date(2026, 3, 3)
    )

    rows = _rows(report.content)
    assert report.filename == "checkins_today_2026-03-03.csv"
    assert rows[2][0] == "date"
    assert ["total_checkins", "0"] in rows
    assert ["medication_adherence_pct", ""] in rows


def test_report_rate_limit_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_REPORTS", 3)
    assert reports_limit() == "3/minute"
