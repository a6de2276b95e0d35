"""
Explicit error handling for assessment operations.

Policy violations (unknown code, closed window, duplicate day, bad input) are
expected outcomes, so services return them as values in a `Result` instead of
raising. Only unexpected infrastructure failures propagate as exceptions.
"""

from typing import Any, ClassVar, Generic, Literal, TypeVar

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)

ErrorKind = Literal["not_found", "invalid_state", "invalid_argument", "conflict"]


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Holds exactly one of a value or an error.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        if value is None and error is None:
            raise ValueError("Result must have either value or error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error

    def __repr__(self) -> str:
        if self._error is None:
            return f"Result.ok({self._value!r})"
        return f"Result.err({self._error!r})"


class AssessmentError(Exception):
    """Base class for every policy violation the core reports."""

    kind: ClassVar[ErrorKind]
    title: ClassVar[str]
    http_status: ClassVar[int]

    def __init__(self, detail: str, **context: Any) -> None:
        super().__init__(detail)
        self.detail = detail
        self.context = context


class PrescriptionNotFoundError(AssessmentError):
    kind = "not_found"
    title = "Prescription not found"
    http_status = 404


class InvalidStateError(AssessmentError):
    """The prescription's lifecycle does not allow the operation."""

    kind = "invalid_state"
    title = "Operation not allowed in current prescription state"
    http_status = 400


class InvalidArgumentError(AssessmentError):
    """Malformed or out-of-policy input."""

    kind = "invalid_argument"
    title = "Invalid request"
    http_status = 400

    def __init__(
        self, detail: str, errors: list[dict[str, str]] | None = None, **context: Any
    ) -> None:
        super().__init__(detail, **context)
        self.errors = errors or []


class DuplicateAssessmentConflictError(AssessmentError):
    """An assessment already exists for the prescription on that date."""

    kind = "conflict"
    title = "Duplicate daily assessment"
    http_status = 409
