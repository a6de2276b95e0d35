"""
Boundary facade an HTTP layer calls into.

Payloads arrive as plain mappings with camelCase keys. They are validated
with the request models, handed to the services, and failures are turned
into problem-detail bodies (RFC 7807 shape) with the matching status code.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from treatment_tracker.domain.models import (
    DailyAssessmentRequest,
    DailyAssessmentResponse,
    WeeklyTrendQuery,
    WeeklyTrendReport,
)
from treatment_tracker.services.assessment_submission import AssessmentSubmissionService
from treatment_tracker.services.errors import AssessmentError, InvalidArgumentError, Result
from treatment_tracker.services.weekly_trend import WeeklyTrendService

logger = structlog.get_logger(__name__)

PROBLEM_TYPE_BASE = "https://problems.treatment-tracker.example/"


def _field_errors(error: ValidationError) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(part) for part in item["loc"]) or "body", "message": item["msg"]}
        for item in error.errors()
    ]


def problem_detail(error: AssessmentError) -> dict[str, Any]:
    """Render an error as a problem-detail body."""
    body: dict[str, Any] = {
        "type": PROBLEM_TYPE_BASE + error.kind.replace("_", "-"),
        "title": error.title,
        "status": error.http_status,
        "detail": error.detail,
    }
    if isinstance(error, InvalidArgumentError) and error.errors:
        body["errors"] = error.errors
    return body


class AssessmentEndpoints:
    """Entry points for the two inbound operations."""

    def __init__(
        self, submissions: AssessmentSubmissionService, trends: WeeklyTrendService
    ) -> None:
        self.submissions = submissions
        self.trends = trends
        self.logger = logger.bind(component="assessment_endpoints")

    async def submit_daily(
        self, payload: Mapping[str, Any]
    ) -> Result[DailyAssessmentResponse, AssessmentError]:
        try:
            request = DailyAssessmentRequest.model_validate(payload)
        except ValidationError as e:
            return self._invalid(e)

        return await self.submissions.submit(
            request.prescription_code,
            request.date,
            request.pain_score,
            request.stress_score,
            request.function_score,
            [pain.to_entry() for pain in request.pains],
        )

    async def weekly_trend(
        self, params: Mapping[str, Any]
    ) -> Result[WeeklyTrendReport, AssessmentError]:
        try:
            query = WeeklyTrendQuery.model_validate(params)
        except ValidationError as e:
            return self._invalid(e)

        return await self.trends.weekly_trend(
            query.prescription_code, query.start_week, query.end_week
        )

    def _invalid(self, error: ValidationError) -> Result[Any, AssessmentError]:
        errors = _field_errors(error)
        self.logger.info("request_validation_failed", errors=errors)
        return Result.err(InvalidArgumentError("request failed validation", errors=errors))
