"""
Persistence seams the services depend on.

Why Protocol over ABC: structural typing, so the in-memory and SQLAlchemy
gateways (and test doubles) need no shared base class.
"""

from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Protocol

from treatment_tracker.domain.models import DailyAssessment, Prescription


class DuplicateAssessmentError(Exception):
    """Storage rejected a second assessment for the same prescription and date."""

    def __init__(self, prescription_id: int, day: date) -> None:
        super().__init__(f"assessment already stored for prescription {prescription_id} on {day}")
        self.prescription_id = prescription_id
        self.date = day


class AssessmentRepository(Protocol):
    """Reads and writes available inside one unit of work."""

    async def find_prescription_by_code(self, code: str) -> Prescription | None: ...

    async def exists_assessment(self, prescription_id: int, day: date) -> bool: ...

    async def save_assessment(self, assessment: DailyAssessment) -> int:
        """
        Store an assessment together with its pain entries.

        Returns:
            int: identity of the stored assessment.

        Raises:
            DuplicateAssessmentError: (prescription, date) is already taken.
        """
        ...

    async def find_assessments_in_week_range(
        self, prescription_id: int, start_week: int, end_week: int
    ) -> list[DailyAssessment]:
        """Assessments with `start_week <= week <= end_week`, ordered by week then date."""
        ...


class PersistenceGateway(Protocol):
    """
    Opens units of work.

    The body of `session()` is atomic: committed when it exits normally,
    rolled back when it raises.
    """

    def session(self) -> AbstractAsyncContextManager[AssessmentRepository]: ...
