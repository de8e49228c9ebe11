"""Tests for the metrics aggregator."""
from datetime import date, datetime, timedelta, timezone

import pytest

from caretrack.db.enums import TimeWindow
from caretrack.db.models import CheckIn
from caretrack.services import assignment_service, metrics_service


def _checkin(day: date, tremor: int = 5, medication: str = "yes", side_effects=None) -> CheckIn:
    return CheckIn(
        check_in_date=day,
        tremor_score=tremor,
        stiffness_score=4,
        balance_score=5,
        sleep_score=6,
        mood_score=7,
        medication_taken=medication,
        side_effects=side_effects or [],
    )


DAY = date(2026, 3, 10)


def test_symptom_averages():
    checkins = [_checkin(DAY, tremor=t) for t in (2, 4, 6)]

    averages = metrics_service.symptom_averages(checkins)

    assert averages.tremor == 4.0
    assert averages.mood == 7.0


def test_symptom_averages_empty_is_none():
    assert metrics_service.symptom_averages([]) is None


def test_averages_round_half_up():
    # 2, 2, 2, 3 -> 2.25 -> 2.3
    checkins = [_checkin(DAY, tremor=t) for t in (2, 2, 2, 3)]
    assert metrics_service.symptom_averages(checkins).tremor == 2.3


def test_medication_adherence():
    checkins = (
        [_checkin(DAY, medication="yes")] * 7
        + [_checkin(DAY, medication="partially")] * 2
        + [_checkin(DAY, medication="missed")]
    )

    assert metrics_service.medication_adherence(checkins) == 70
    breakdown = metrics_service.medication_breakdown(checkins)
    assert (breakdown.taken, breakdown.partially, breakdown.missed) == (7, 2, 1)
    assert breakdown.total == 10


def test_medication_adherence_rounds_half_up():
    # 137/200 = 68.5% -> 69
    checkins = [_checkin(DAY, medication="yes")] * 137 + [_checkin(DAY, medication="missed")] * 63
    assert metrics_service.medication_adherence(checkins) == 69


def test_medication_adherence_empty_is_none():
    assert metrics_service.medication_adherence([]) is None


def test_side_effect_frequency_ties_keep_first_seen_order():
    checkins = [
        _checkin(DAY, side_effects=["nausea", "dizziness"]),
        _checkin(DAY, side_effects=["fatigue", "dizziness"]),
        _checkin(DAY, side_effects=["nausea", "fatigue"]),
        _checkin(DAY, side_effects=["insomnia"]),
    ]

    ranked = metrics_service.side_effect_frequency(checkins, top_n=3)

    assert [(s.name, s.count) for s in ranked] == [("nausea", 2), ("dizziness", 2), ("fatigue", 2)]


def test_missed_days_never_negative():
    assert metrics_service.missed_days(10, 4) == 6
    assert metrics_service.missed_days(3, 7) == 0


def test_days_since_registration_uses_calendar_dates():
    registered = datetime(2026, 3, 1, 23, 59, tzinfo=timezone.utc)
    assert metrics_service.days_since_registration(registered, date(2026, 3, 3)) == 2
    assert metrics_service.days_since_registration(registered, date(2026, 2, 1)) == 0


@pytest.mark.parametrize(
    "window, start",
    [
        (TimeWindow.TODAY, DAY),
        (TimeWindow.LAST_7_DAYS, DAY - timedelta(days=7)),
        (TimeWindow.LAST_30_DAYS, DAY - timedelta(days=30)),
        (TimeWindow.LAST_90_DAYS, DAY - timedelta(days=90)),
    ],
)
def test_window_bounds(window, start):
    assert metrics_service.window_bounds(window, DAY) == (start, DAY)


def test_start_of_week_is_sunday():
    # 2026-03-10 is a Tuesday
    assert metrics_service.start_of_week(DAY) == date(2026, 3, 8)
    assert metrics_service.start_of_week(date(2026, 3, 8)) == date(2026, 3, 8)
    assert metrics_service.start_of_week(date(2026, 3, 14)) == date(2026, 3, 8)


def test_summarize_filters_to_window_and_orders_series():
    checkins = [
        _checkin(DAY, tremor=6),
        _checkin(DAY - timedelta(days=2), tremor=2),
        _checkin(DAY - timedelta(days=20), tremor=9),
    ]

    summary = metrics_service.summarize(checkins, TimeWindow.LAST_7_DAYS, DAY, top_n=5)

    assert summary.total_checkins == 2
    assert summary.averages.tremor == 4.0
    assert summary.medication_adherence == 100
    assert [p.check_in_date for p in summary.series] == [DAY - timedelta(days=2), DAY]


def test_summarize_empty_window():
    summary = metrics_service.summarize([], TimeWindow.LAST_30_DAYS, DAY, top_n=5)

    assert summary.total_checkins == 0
    assert summary.averages is None
    assert summary.medication_adherence is None
    assert summary.top_side_effects == []


def test_patient_detail_stats():
    registered = datetime(2026, 3, 1, tzinfo=timezone.utc)
    checkins = [_checkin(DAY - timedelta(days=d), medication="yes" if d else "missed") for d in range(4)]

    stats = metrics_service.patient_detail_stats(checkins, registered, DAY, top_n=5)

    assert stats.total_checkins == 4
    assert stats.days_since_registration == 9
    assert stats.missed_days == 5
    assert stats.medication_adherence == 75


# =============================================================================
# Endpoint
# =============================================================================

@pytest.mark.asyncio
async def test_metrics_endpoint(client, patient, auth, seed_checkin):
    today = date.today()
    seed_checkin(patient, today, tremor_score=2, side_effects=["nausea"])
    seed_checkin(patient, today - timedelta(days=1), tremor_score=4, medication_taken="missed")

    response = await client.get(
        f"/patients/{patient.id}/metrics", params={"window": "7days"}, headers=auth(patient)
    )

    assert response.status_code == 200
    summary = response.json()["summary"]
    assert response.json()["restricted"] is False
    assert summary["total_checkins"] == 2
    assert summary["averages"]["tremor"] == 3.0
    assert summary["medication_adherence"] == 50
    assert summary["top_side_effects"] == [{"name": "nausea", "count": 1}]
    assert len(summary["series"]) == 2


@pytest.mark.asyncio
async def test_metrics_restricted_for_caretaker_without_view(
    client, db, admin, patient, caretaker, auth, principal
):
    assignment_service.create_assignment(db, principal(admin), patient.id, caretaker.id)
    db.commit()

    response = await client.get(f"/patients/{patient.id}/metrics", headers=auth(caretaker))

    assert response.status_code == 200
    assert response.json()["restricted"] is True
    assert response.json()["summary"] is None


@pytest.mark.asyncio
async def test_metrics_rejects_unknown_window(client, patient, auth):
    response = await client.get(
        f"/patients/{patient.id}/metrics", params={"window": "365days"}, headers=auth(patient)
    )
    assert response.status_code == 422
