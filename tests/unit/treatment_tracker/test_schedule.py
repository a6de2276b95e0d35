"""
Tests for prescription status derivation and week arithmetic.

Property-based tests pin the window boundaries for arbitrary activation dates.
"""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest
from hypothesis import given
from hypothesis import strategies as st

from treatment_tracker.domain.models import Prescription, PrescriptionStatus
from treatment_tracker.domain.schedule import (
    current_week,
    is_within_active_window,
    local_date,
    prescription_status,
    week_of,
)

activation_dates = st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 1, 1))
SEOUL = ZoneInfo("Asia/Seoul")


def _prescription(activated: date | None, created: date) -> Prescription:
    return Prescription(
        id=1,
        code="ABCD1234",
        created_at=datetime.combine(created, time(9, 30), tzinfo=UTC),
        activated_date=activated,
    )


class TestPrescriptionStatus:
    @given(activated=activation_dates)
    def test_active_window_boundaries(self, activated: date) -> None:
        prescription = _prescription(activated, activated - timedelta(days=3))

        assert prescription_status(prescription, activated) is PrescriptionStatus.ACTIVE
        assert (
            prescription_status(prescription, activated + timedelta(days=41))
            is PrescriptionStatus.ACTIVE
        )
        assert (
            prescription_status(prescription, activated + timedelta(days=42))
            is PrescriptionStatus.COMPLETED
        )

    @given(activated=activation_dates)
    def test_activation_after_reference_date_is_waiting(self, activated: date) -> None:
        prescription = _prescription(activated, activated - timedelta(days=3))

        assert (
            prescription_status(prescription, activated - timedelta(days=1))
            is PrescriptionStatus.WAITING
        )

    @given(created=activation_dates)
    def test_never_activated_expires_after_six_weeks(self, created: date) -> None:
        prescription = _prescription(None, created)

        assert prescription_status(prescription, created) is PrescriptionStatus.WAITING
        assert (
            prescription_status(prescription, created + timedelta(days=42))
            is PrescriptionStatus.WAITING
        )
        assert (
            prescription_status(prescription, created + timedelta(days=43))
            is PrescriptionStatus.EXPIRED
        )

    def test_expiry_uses_calendar_date_of_creation(self) -> None:
        # Late-evening creation still counts from that calendar day
        prescription = Prescription(
            id=1,
            code="ZZYY8899",
            created_at=datetime(2025, 1, 1, 23, 59, tzinfo=UTC),
        )

        assert prescription.status(date(2025, 2, 12)) is PrescriptionStatus.WAITING
        assert prescription.status(date(2025, 2, 13)) is PrescriptionStatus.EXPIRED

    def test_expiry_counts_from_creation_date_in_reference_zone(self) -> None:
        # 20:00 UTC on Jan 1 is already Jan 2 in Seoul
        prescription = Prescription(
            id=1,
            code="ZZYY8899",
            created_at=datetime(2025, 1, 1, 20, 0, tzinfo=UTC),
        )
        last_waiting_day = date(2025, 1, 2) + timedelta(days=42)

        assert prescription.status(last_waiting_day, SEOUL) is PrescriptionStatus.WAITING
        assert (
            prescription.status(last_waiting_day + timedelta(days=1), SEOUL)
            is PrescriptionStatus.EXPIRED
        )
        assert prescription.status(last_waiting_day, UTC) is PrescriptionStatus.EXPIRED

    @pytest.mark.parametrize(
        "moment,zone,expected",
        [
            (datetime(2025, 1, 1, 20, 0, tzinfo=UTC), SEOUL, date(2025, 1, 2)),
            (datetime(2025, 1, 1, 20, 0, tzinfo=UTC), None, date(2025, 1, 1)),
            (datetime(2025, 1, 1, 20, 0), SEOUL, date(2025, 1, 1)),
        ],
    )
    def test_local_date(self, moment: datetime, zone, expected: date) -> None:
        assert local_date(moment, zone) == expected

    def test_status_method_delegates(self) -> None:
        prescription = _prescription(date(2025, 3, 1), date(2025, 2, 27))

        assert prescription.status(date(2025, 3, 10)) is PrescriptionStatus.ACTIVE
        assert prescription.status(date(2025, 5, 1)) is PrescriptionStatus.COMPLETED


class TestWeekArithmetic:
    @pytest.mark.parametrize(
        "offset,expected_week",
        [(0, 1), (6, 1), (7, 2), (13, 2), (14, 3), (27, 4), (28, 5), (35, 6), (41, 6)],
    )
    def test_week_boundaries(self, offset: int, expected_week: int) -> None:
        activated = date(2025, 1, 6)
        assert week_of(activated, activated + timedelta(days=offset)) == expected_week

    @given(activated=activation_dates, offset=st.integers(min_value=0, max_value=41))
    def test_week_always_within_course_inside_window(self, activated: date, offset: int) -> None:
        day = activated + timedelta(days=offset)

        assert is_within_active_window(activated, day)
        assert week_of(activated, day) == offset // 7 + 1
        assert 1 <= week_of(activated, day) <= 6

    def test_window_excludes_neighbouring_days(self) -> None:
        activated = date(2025, 1, 6)

        assert not is_within_active_window(activated, activated - timedelta(days=1))
        assert not is_within_active_window(activated, activated + timedelta(days=42))


class TestCurrentWeek:
    def test_active_course_reports_running_week(self) -> None:
        prescription = _prescription(date(2025, 3, 7), date(2025, 3, 5))
        assert current_week(prescription, date(2025, 3, 15)) == 2

    def test_completed_course_clamps_to_last_week(self) -> None:
        prescription = _prescription(date(2025, 1, 1), date(2024, 12, 30))
        assert current_week(prescription, date(2025, 6, 1)) == 6

    @pytest.mark.parametrize(
        "activated,created",
        [
            (None, date(2025, 3, 10)),  # waiting
            (None, date(2024, 1, 1)),  # expired
            (date(2025, 4, 1), date(2025, 3, 1)),  # activation in the future
        ],
    )
    def test_other_states_report_week_one(self, activated: date | None, created: date) -> None:
        prescription = _prescription(activated, created)
        assert current_week(prescription, date(2025, 3, 15)) == 1
