"""Shared fixtures: a frozen clock, an in-memory gateway and a prescription helper."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from treatment_tracker.adapters.memory import InMemoryGateway
from treatment_tracker.domain.models import Prescription
from treatment_tracker.services.assessment_submission import AssessmentSubmissionService
from treatment_tracker.services.clock import FixedClock
from treatment_tracker.services.weekly_trend import WeeklyTrendService

NOW = datetime(2025, 3, 15, 10, 0, tzinfo=UTC)
TODAY = NOW.date()


async def provision(
    gateway: InMemoryGateway,
    code: str,
    activated_days_ago: int | None = None,
    created_days_ago: int = 0,
) -> Prescription:
    """Create a prescription relative to TODAY."""
    activated: date | None = None
    if activated_days_ago is not None:
        activated = TODAY - timedelta(days=activated_days_ago)
        created_days_ago = max(created_days_ago, activated_days_ago + 2)
    return await gateway.add_prescription(
        code, created_at=NOW - timedelta(days=created_days_ago), activated_date=activated
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def submissions(gateway: InMemoryGateway, clock: FixedClock) -> AssessmentSubmissionService:
    return AssessmentSubmissionService(gateway, clock)


@pytest.fixture
def trends(gateway: InMemoryGateway, clock: FixedClock) -> WeeklyTrendService:
    return WeeklyTrendService(gateway, clock)
