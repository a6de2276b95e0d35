"""
Tests for the boundary facade.

Payloads use the camelCase keys of the public API; responses are checked in
their serialized (by alias) form.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import TODAY, provision

from treatment_tracker.adapters.memory import InMemoryGateway
from treatment_tracker.bootstrap import create_endpoints
from treatment_tracker.config import AppConfig, DatabaseConfig, LoggingConfig
from treatment_tracker.services.clock import FixedClock
from treatment_tracker.services.endpoints import AssessmentEndpoints, problem_detail
from treatment_tracker.services.errors import (
    DuplicateAssessmentConflictError,
    InvalidArgumentError,
    InvalidStateError,
    PrescriptionNotFoundError,
)


@pytest.fixture
async def endpoints(gateway: InMemoryGateway, clock: FixedClock) -> AssessmentEndpoints:
    config = AppConfig(
        database=DatabaseConfig(backend="memory"),
        logging=LoggingConfig(level="WARNING", format="console"),
    )
    return await create_endpoints(config, gateway=gateway, clock=clock)


def _payload(**overrides):
    body = {
        "prescriptionCode": "ABCD1234",
        "date": (TODAY - timedelta(days=1)).isoformat(),
        "painScore": 7,
        "stressScore": 5,
        "functionScore": 6,
        "pains": [
            {"location": "LEFT_JAW", "intensity": 8, "note": "chewing pain"},
            {"location": "RIGHT_TEMPLE", "intensity": 6, "note": None},
        ],
    }
    body.update(overrides)
    return body


class TestSubmitDaily:
    async def test_accepted_then_conflict(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints
    ) -> None:
        await provision(gateway, "ABCD1234", activated_days_ago=8)

        created = await endpoints.submit_daily(_payload())
        repeated = await endpoints.submit_daily(_payload())

        assert created.unwrap().model_dump(by_alias=True) == {
            "assessmentId": 1,
            "prescriptionCode": "ABCD1234",
            "week": 2,
        }
        error = repeated.unwrap_err()
        assert isinstance(error, DuplicateAssessmentConflictError)
        assert problem_detail(error)["status"] == 409

    @pytest.mark.parametrize("code", ["ABCDE123", "ABCD123", "abcd1234", "ABCD12345", "INVALID1"])
    async def test_malformed_code_rejected_before_lookup(
        self, endpoints: AssessmentEndpoints, code: str
    ) -> None:
        result = await endpoints.submit_daily(_payload(prescriptionCode=code))

        error = result.unwrap_err()
        assert isinstance(error, InvalidArgumentError)
        assert error.errors[0]["field"] == "prescriptionCode"

    @pytest.mark.parametrize("code", ["12AB34CD", "A1B2C3D4", "1234WXYZ"])
    async def test_letters_and_digits_in_any_order_accepted(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints, code: str
    ) -> None:
        await provision(gateway, code, activated_days_ago=3)

        result = await endpoints.submit_daily(_payload(prescriptionCode=code))

        assert result.unwrap().week == 1

    @pytest.mark.parametrize(
        "overrides",
        [
            {"painScore": 11},
            {"stressScore": -1},
            {"functionScore": "high"},
            {"pains": [{"location": "LEFT_JAW", "intensity": 1}] * 7},
            {"pains": [{"location": "LEFT_KNEE", "intensity": 1}]},
            {"pains": [{"location": "NECK", "intensity": 12}]},
            {"date": "not-a-date"},
        ],
    )
    async def test_boundary_validation_failures(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints, overrides: dict
    ) -> None:
        await provision(gateway, "ABCD1234", activated_days_ago=8)

        result = await endpoints.submit_daily(_payload(**overrides))

        error = result.unwrap_err()
        assert isinstance(error, InvalidArgumentError)
        body = problem_detail(error)
        assert body["status"] == 400
        assert body["errors"]
        assert gateway.assessments == []

    async def test_unknown_code_maps_to_404(self, endpoints: AssessmentEndpoints) -> None:
        result = await endpoints.submit_daily(_payload(prescriptionCode="ZZZZ9999"))

        error = result.unwrap_err()
        assert isinstance(error, PrescriptionNotFoundError)
        assert problem_detail(error) == {
            "type": "https://problems.treatment-tracker.example/not-found",
            "title": "Prescription not found",
            "status": 404,
            "detail": "no prescription with code ZZZZ9999",
        }

    async def test_completed_course_maps_to_400(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints
    ) -> None:
        await provision(gateway, "EFGH5678", activated_days_ago=50)

        result = await endpoints.submit_daily(_payload(prescriptionCode="EFGH5678"))

        error = result.unwrap_err()
        assert isinstance(error, InvalidStateError)
        assert problem_detail(error)["status"] == 400


class TestWeeklyTrendEndpoint:
    async def test_serialized_report_shape(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints
    ) -> None:
        await provision(gateway, "QWER2348", activated_days_ago=10)
        base = TODAY - timedelta(days=10)
        for offset, score in ((0, 0), (7, 5)):
            result = await endpoints.submit_daily(
                _payload(
                    prescriptionCode="QWER2348",
                    date=(base + timedelta(days=offset)).isoformat(),
                    painScore=score,
                    stressScore=score,
                    functionScore=score,
                    pains=[{"location": "CHIN", "intensity": 4}],
                )
            )
            assert result.is_ok()

        report = await endpoints.weekly_trend({"prescriptionCode": "QWER2348"})

        assert report.unwrap().model_dump(by_alias=True, mode="json") == {
            "prescriptionCode": "QWER2348",
            "period": {"startWeek": 1, "endWeek": 2},
            "weeklyTrend": [
                {
                    "week": 1,
                    "avgPain": 0.0,
                    "avgStress": 0.0,
                    "avgFunction": 0.0,
                    "changeRate": None,
                },
                {
                    "week": 2,
                    "avgPain": 5.0,
                    "avgStress": 5.0,
                    "avgFunction": 5.0,
                    "changeRate": {"pain": 0.0, "stress": 0.0, "function": 0.0},
                },
            ],
            "topPainLocations": [{"location": "CHIN", "count": 2, "avgIntensity": 4.0}],
        }

    @pytest.mark.parametrize(
        "params",
        [
            {"prescriptionCode": "ABCD1234", "startWeek": "0"},
            {"prescriptionCode": "ABCD1234", "endWeek": 9},
            {"prescriptionCode": "INVALID1"},
            {},
        ],
    )
    async def test_invalid_query_parameters(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints, params: dict
    ) -> None:
        await provision(gateway, "ABCD1234", activated_days_ago=8)

        result = await endpoints.weekly_trend(params)

        assert isinstance(result.unwrap_err(), InvalidArgumentError)

    async def test_week_parameters_from_query_strings(
        self, gateway: InMemoryGateway, endpoints: AssessmentEndpoints
    ) -> None:
        await provision(gateway, "ABCD1234", activated_days_ago=30)

        result = await endpoints.weekly_trend(
            {"prescriptionCode": "ABCD1234", "startWeek": "2", "endWeek": "5"}
        )

        period = result.unwrap().period
        assert (period.start_week, period.end_week) == (2, 5)
