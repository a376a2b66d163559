"""
Error taxonomy for the scheduler, store and study session.

- InvalidGradeError: programmer/input error, never retried
- PersistenceError: store read/write failure, retryable by the caller
- DataIntegrityError: fetched word/record is missing required fields
- ConcurrentGradingError: a grading was submitted while one is in flight
- SessionStateError: an operation was called in the wrong session state
"""

from __future__ import annotations

from typing import Optional


class VocabSrsError(Exception):
    """Base class for all library errors."""


class InvalidGradeError(VocabSrsError, ValueError):
    """Grade outside {1, 2, 3, 4}."""

    def __init__(self, grade: object):
        self.grade = grade
        super().__init__(f"Invalid grade {grade!r}: expected one of 1, 2, 3, 4")


class PersistenceError(VocabSrsError):
    """Review record store failure (transport, driver or rejected write)."""

    retryable = True

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        if operation:
            message = f"{operation}: {message}"
        super().__init__(message)


class DataIntegrityError(VocabSrsError):
    """Fetched word or record data is malformed."""


class ConcurrentGradingError(VocabSrsError):
    """A grading was submitted while a previous one is still being saved."""


class SessionStateError(VocabSrsError):
    """Session operation called in a state that does not allow it."""
