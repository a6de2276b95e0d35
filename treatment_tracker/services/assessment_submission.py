"""
Daily assessment ingestion.

A submission is accepted only while the prescription is ACTIVE, only for a
day inside the 42-day window that is not in the future, and only once per
prescription per day. Checks run in a fixed order so every rejection maps to
one error kind:

1. unknown prescription code          -> PrescriptionNotFoundError
2. status on that day is not ACTIVE   -> InvalidStateError
3. day outside the activation window  -> InvalidStateError
4. day already assessed               -> DuplicateAssessmentConflictError
5. day after today                    -> InvalidArgumentError
6. repeated pain location             -> InvalidArgumentError
7. scores / intensities / entry count / code shape out of range -> InvalidArgumentError

The checks and the write share one gateway session, so a rejected
submission never writes and an accepted one writes exactly once.
"""

from collections.abc import Sequence
from datetime import date

import structlog

from treatment_tracker.domain.models import (
    MAX_PAIN_ENTRIES,
    MAX_SCORE,
    MIN_SCORE,
    DailyAssessment,
    DailyAssessmentResponse,
    PainEntry,
    PrescriptionStatus,
    is_valid_prescription_code,
)
from treatment_tracker.domain.schedule import is_within_active_window, week_of
from treatment_tracker.services.clock import Clock
from treatment_tracker.services.errors import (
    AssessmentError,
    DuplicateAssessmentConflictError,
    InvalidArgumentError,
    InvalidStateError,
    PrescriptionNotFoundError,
    Result,
)
from treatment_tracker.services.repository import (
    AssessmentRepository,
    DuplicateAssessmentError,
    PersistenceGateway,
)

logger = structlog.get_logger(__name__)

SubmissionResult = Result[DailyAssessmentResponse, AssessmentError]

_RANGE_MESSAGE = f"must be between {MIN_SCORE} and {MAX_SCORE}"


def _in_score_range(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return MIN_SCORE <= value <= MAX_SCORE


def structural_violations(
    prescription_code: str,
    pain_score: int,
    stress_score: int,
    function_score: int,
    pains: Sequence[PainEntry],
) -> list[dict[str, str]]:
    """Shape checks the boundary normally performs before the core is reached."""
    violations: list[dict[str, str]] = []
    if not is_valid_prescription_code(prescription_code):
        violations.append(
            {"field": "prescriptionCode", "message": "must be 4 uppercase letters + 4 digits"}
        )
    for field, value in (
        ("painScore", pain_score),
        ("stressScore", stress_score),
        ("functionScore", function_score),
    ):
        if not _in_score_range(value):
            violations.append({"field": field, "message": _RANGE_MESSAGE})
    if len(pains) > MAX_PAIN_ENTRIES:
        violations.append({"field": "pains", "message": f"at most {MAX_PAIN_ENTRIES} entries"})
    for index, entry in enumerate(pains):
        if not _in_score_range(entry.intensity):
            violations.append(
                {
                    "field": f"pains[{index}].intensity",
                    "message": _RANGE_MESSAGE,
                }
            )
    return violations


class AssessmentSubmissionService:
    """Validates and stores daily assessments."""

    def __init__(self, gateway: PersistenceGateway, clock: Clock) -> None:
        self.gateway = gateway
        self.clock = clock
        self.logger = logger.bind(component="assessment_submission")

    async def submit(
        self,
        prescription_code: str,
        date: date,
        pain_score: int,
        stress_score: int,
        function_score: int,
        pains: Sequence[PainEntry] = (),
        today: date | None = None,
    ) -> SubmissionResult:
        """
        Record one day's assessment for a prescription.

        Returns:
            Result[DailyAssessmentResponse, AssessmentError]: the stored assessment's id
            and course week, or the reason it was rejected.
        """
        if today is None:
            today = self.clock.today()

        try:
            async with self.gateway.session() as repo:
                result = await self._submit_in_session(
                    repo,
                    prescription_code,
                    date,
                    pain_score,
                    stress_score,
                    function_score,
                    list(pains),
                    today,
                )
        except DuplicateAssessmentError as e:
            # Lost a race against a concurrent submission for the same day
            self.logger.warning(
                "duplicate_assessment_race_detected",
                prescription_code=prescription_code,
                date=date.isoformat(),
            )
            conflict = DuplicateAssessmentConflictError(
                "an assessment for this date already exists",
                prescription_code=prescription_code,
                date=date.isoformat(),
            )
            conflict.__cause__ = e
            result = Result.err(conflict)

        if result.is_err():
            error = result.unwrap_err()
            self.logger.info(
                "assessment_rejected",
                prescription_code=prescription_code,
                date=date.isoformat(),
                kind=error.kind,
                detail=error.detail,
            )
        else:
            receipt = result.unwrap()
            self.logger.info(
                "assessment_submitted",
                prescription_code=prescription_code,
                date=date.isoformat(),
                assessment_id=receipt.assessment_id,
                week=receipt.week,
            )
        return result

    async def _submit_in_session(
        self,
        repo: AssessmentRepository,
        prescription_code: str,
        day: date,
        pain_score: int,
        stress_score: int,
        function_score: int,
        pains: list[PainEntry],
        today: date,
    ) -> SubmissionResult:
        prescription = await repo.find_prescription_by_code(prescription_code)
        if prescription is None:
            return Result.err(
                PrescriptionNotFoundError(
                    f"no prescription with code {prescription_code}",
                    prescription_code=prescription_code,
                )
            )

        status = prescription.status(day, self.clock.zone)
        if status is not PrescriptionStatus.ACTIVE:
            return Result.err(
                InvalidStateError(
                    f"assessments are allowed only while ACTIVE (status on {day}: {status.value})",
                    status=status.value,
                )
            )

        activated = prescription.activated_date
        if activated is None or not is_within_active_window(activated, day):
            return Result.err(
                InvalidStateError("assessment date must be within the activation window")
            )

        if await repo.exists_assessment(prescription.id, day):
            return Result.err(
                DuplicateAssessmentConflictError(
                    "an assessment for this date already exists",
                    prescription_code=prescription_code,
                    date=day.isoformat(),
                )
            )

        if day > today:
            return Result.err(
                InvalidArgumentError(
                    "future dates are not allowed",
                    errors=[{"field": "date", "message": f"must not be after {today.isoformat()}"}],
                )
            )

        locations = [entry.location for entry in pains]
        if len(set(locations)) != len(locations):
            return Result.err(
                InvalidArgumentError(
                    "duplicate pain locations are not allowed",
                    errors=[{"field": "pains", "message": "locations must be distinct"}],
                )
            )

        violations = structural_violations(
            prescription_code, pain_score, stress_score, function_score, pains
        )
        if violations:
            return Result.err(InvalidArgumentError("request failed validation", errors=violations))

        week = week_of(activated, day)
        assessment = DailyAssessment(
            prescription_id=prescription.id,
            date=day,
            week=week,
            pain_score=pain_score,
            stress_score=stress_score,
            function_score=function_score,
            pains=pains,
        )
        assessment_id = await repo.save_assessment(assessment)

        return Result.ok(
            DailyAssessmentResponse(
                assessment_id=assessment_id,
                prescription_code=prescription.code,
                week=week,
            )
        )
