"""
In-memory persistence gateway.

Sessions are serialized with an asyncio.Lock and staged: writes become
visible only when the session body exits normally, so a failed unit of work
leaves nothing behind.
"""

import asyncio
import itertools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime

from treatment_tracker.domain.models import DailyAssessment, Prescription
from treatment_tracker.services.repository import DuplicateAssessmentError


class InMemoryAssessmentRepository:
    """Repository view over an `InMemoryGateway` for one session."""

    def __init__(self, gateway: "InMemoryGateway") -> None:
        self._gateway = gateway
        self._staged: list[DailyAssessment] = []

    async def find_prescription_by_code(self, code: str) -> Prescription | None:
        return self._gateway.prescriptions.get(code)

    async def exists_assessment(self, prescription_id: int, day: date) -> bool:
        return self._key_taken(prescription_id, day)

    async def save_assessment(self, assessment: DailyAssessment) -> int:
        if self._key_taken(assessment.prescription_id, assessment.date):
            raise DuplicateAssessmentError(assessment.prescription_id, assessment.date)
        stored = assessment.model_copy(update={"id": next(self._gateway._assessment_ids)})
        self._staged.append(stored)
        return stored.id  # type: ignore[return-value]

    async def find_assessments_in_week_range(
        self, prescription_id: int, start_week: int, end_week: int
    ) -> list[DailyAssessment]:
        matches = [
            a
            for a in self._visible()
            if a.prescription_id == prescription_id and start_week <= a.week <= end_week
        ]
        return sorted(matches, key=lambda a: (a.week, a.date))

    def _visible(self) -> list[DailyAssessment]:
        return [*self._gateway.assessments, *self._staged]

    def _key_taken(self, prescription_id: int, day: date) -> bool:
        return any(a.prescription_id == prescription_id and a.date == day for a in self._visible())

    def _commit(self) -> None:
        self._gateway.assessments.extend(self._staged)
        self._staged.clear()


class InMemoryGateway:
    """Dict-backed store; handy for tests and single-process deployments."""

    def __init__(self) -> None:
        self.prescriptions: dict[str, Prescription] = {}
        self.assessments: list[DailyAssessment] = []
        self._lock = asyncio.Lock()
        self._prescription_ids = itertools.count(1)
        self._assessment_ids = itertools.count(1)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[InMemoryAssessmentRepository]:
        async with self._lock:
            repo = InMemoryAssessmentRepository(self)
            yield repo
            repo._commit()

    async def add_prescription(
        self, code: str, created_at: datetime, activated_date: date | None = None
    ) -> Prescription:
        if code in self.prescriptions:
            raise ValueError(f"prescription code {code} already exists")
        prescription = Prescription(
            id=next(self._prescription_ids),
            code=code,
            created_at=created_at,
            activated_date=activated_date,
        )
        self.prescriptions[code] = prescription
        return prescription
