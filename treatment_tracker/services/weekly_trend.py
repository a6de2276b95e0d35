"""
Weekly trend aggregation over stored daily assessments.

For a prescription and a range of course weeks this produces:
- per-week averages of pain, stress and function scores
- change rates against the nearest earlier week that has data
- the three most frequently reported pain locations

Weeks without assessments are left out rather than zero-filled, and the
change-rate lookback skips over them.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from statistics import fmean

import structlog

from treatment_tracker.domain.models import (
    ChangeRate,
    DailyAssessment,
    PainEntry,
    PainLocation,
    PeriodRange,
    TopPainLocation,
    WeeklyTrendItem,
    WeeklyTrendReport,
)
from treatment_tracker.domain.schedule import TOTAL_WEEKS, current_week
from treatment_tracker.services.clock import Clock
from treatment_tracker.services.errors import (
    AssessmentError,
    InvalidArgumentError,
    PrescriptionNotFoundError,
    Result,
)
from treatment_tracker.services.repository import PersistenceGateway

logger = structlog.get_logger(__name__)

TOP_PAIN_LOCATIONS = 3

_ONE_DECIMAL = Decimal("0.1")


def round_one(value: float) -> float:
    """Round to one decimal place, halves away from zero (7.25 -> 7.3)."""
    rounded = float(Decimal(repr(value)).quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))
    return rounded + 0.0  # normalizes -0.0


def change_rate(previous: float, current: float, *, lower_is_better: bool) -> float:
    """
    Percent improvement from `previous` to `current`.

    A zero previous average has no meaningful ratio and yields 0.0.
    """
    if previous == 0:
        return 0.0
    delta = previous - current if lower_is_better else current - previous
    return round_one(delta / previous * 100.0)


def build_weekly_items(assessments: Iterable[DailyAssessment]) -> list[WeeklyTrendItem]:
    """Group assessments by week (ascending) and fold change rates across the groups."""
    by_week: defaultdict[int, list[DailyAssessment]] = defaultdict(list)
    for assessment in assessments:
        by_week[assessment.week].append(assessment)

    items: list[WeeklyTrendItem] = []
    previous: WeeklyTrendItem | None = None
    for week in sorted(by_week):
        group = by_week[week]
        avg_pain = fmean(a.pain_score for a in group)
        avg_stress = fmean(a.stress_score for a in group)
        avg_function = fmean(a.function_score for a in group)

        rate = None
        if previous is not None:
            rate = ChangeRate(
                pain=change_rate(previous.avg_pain, avg_pain, lower_is_better=True),
                stress=change_rate(previous.avg_stress, avg_stress, lower_is_better=True),
                function=change_rate(previous.avg_function, avg_function, lower_is_better=False),
            )

        item = WeeklyTrendItem(
            week=week,
            avg_pain=round_one(avg_pain),
            avg_stress=round_one(avg_stress),
            avg_function=round_one(avg_function),
            change_rate=rate,
        )
        items.append(item)
        previous = item
    return items


def rank_pain_locations(
    pains: Iterable[PainEntry], limit: int = TOP_PAIN_LOCATIONS
) -> list[TopPainLocation]:
    """Most reported locations first; ties go to the higher average intensity."""
    intensities: dict[PainLocation, list[int]] = defaultdict(list)
    for entry in pains:
        intensities[entry.location].append(entry.intensity)

    ranked = [
        TopPainLocation(
            location=location, count=len(values), avg_intensity=round_one(fmean(values))
        )
        for location, values in intensities.items()
    ]
    ranked.sort(key=lambda top: (top.count, top.avg_intensity), reverse=True)
    return ranked[:limit]


class WeeklyTrendService:
    """Read-only weekly statistics for a prescription."""

    def __init__(self, gateway: PersistenceGateway, clock: Clock) -> None:
        self.gateway = gateway
        self.clock = clock
        self.logger = logger.bind(component="weekly_trend")

    async def weekly_trend(
        self,
        prescription_code: str,
        start_week: int | None = None,
        end_week: int | None = None,
        today: date | None = None,
    ) -> Result[WeeklyTrendReport, AssessmentError]:
        """
        Aggregate assessments for weeks `start_week..end_week`.

        `start_week` defaults to 1 and `end_week` to the course's current week.
        """
        if today is None:
            today = self.clock.today()

        async with self.gateway.session() as repo:
            prescription = await repo.find_prescription_by_code(prescription_code)
            if prescription is None:
                return self._reject(
                    PrescriptionNotFoundError(
                        f"no prescription with code {prescription_code}",
                        prescription_code=prescription_code,
                    )
                )

            start = 1 if start_week is None else start_week
            if end_week is None:
                end = current_week(prescription, today, self.clock.zone)
            else:
                end = end_week

            errors: list[dict[str, str]] = []
            week_message = f"must be between 1 and {TOTAL_WEEKS}"
            if not 1 <= start <= TOTAL_WEEKS:
                errors.append({"field": "startWeek", "message": week_message})
            if not 1 <= end <= TOTAL_WEEKS:
                errors.append({"field": "endWeek", "message": week_message})
            if not errors and start > end:
                errors.append({"field": "startWeek", "message": "must not be after endWeek"})
            if errors:
                return self._reject(
                    InvalidArgumentError(
                        "invalid week range", errors=errors, start_week=start, end_week=end
                    )
                )

            assessments = await repo.find_assessments_in_week_range(prescription.id, start, end)

        report = WeeklyTrendReport(
            prescription_code=prescription.code,
            period=PeriodRange(start_week=start, end_week=end),
            weekly_trend=build_weekly_items(assessments),
            top_pain_locations=rank_pain_locations(
                entry for assessment in assessments for entry in assessment.pains
            ),
        )

        self.logger.info(
            "weekly_trend_computed",
            prescription_code=prescription.code,
            start_week=start,
            end_week=end,
            assessments=len(assessments),
            weeks_with_data=len(report.weekly_trend),
        )
        return Result.ok(report)

    def _reject(self, error: AssessmentError) -> Result[WeeklyTrendReport, AssessmentError]:
        self.logger.info("weekly_trend_rejected", kind=error.kind, detail=error.detail)
        return Result.err(error)
