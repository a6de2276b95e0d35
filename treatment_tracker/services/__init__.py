"""
Core services for the application.

This package contains assessment submission, weekly trend aggregation and
the boundary facade, plus the protocols they depend on.
"""

from .assessment_submission import AssessmentSubmissionService
from .clock import Clock, FixedClock, ZonedClock
from .endpoints import AssessmentEndpoints, problem_detail
from .errors import (
    AssessmentError,
    DuplicateAssessmentConflictError,
    InvalidArgumentError,
    InvalidStateError,
    PrescriptionNotFoundError,
    Result,
)
from .repository import AssessmentRepository, DuplicateAssessmentError, PersistenceGateway
from .weekly_trend import WeeklyTrendService

__all__ = [
    "AssessmentEndpoints",
    "AssessmentError",
    "AssessmentRepository",
    "AssessmentSubmissionService",
    "Clock",
    "DuplicateAssessmentConflictError",
    "DuplicateAssessmentError",
    "FixedClock",
    "InvalidArgumentError",
    "InvalidStateError",
    "PersistenceGateway",
    "PrescriptionNotFoundError",
    "Result",
    "WeeklyTrendService",
    "ZonedClock",
    "problem_detail",
]
