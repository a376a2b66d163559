"""
Scheduler - Review Scheduling Logic

Pure scheduling and state updates (no database calls).

Main workflow:
1. Load the review record (caller's responsibility, None if unseen)
2. Validate the grade
3. FORGET: nothing to schedule, the session requeues the word
4. HARD/NORMAL/EASY: update ease factor and interval
5. Return the schedule update for the caller to persist
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from vocab_srs.errors import InvalidGradeError
from vocab_srs.scheduling import interval_updates
from vocab_srs.scheduling.constants import Grade
from vocab_srs.scheduling.review_state import (
    UNSEEN,
    ReviewRecord,
    UnseenState,
    ensure_utc,
    utc_now,
)


@dataclass(frozen=True)
class ScheduleUpdate:
    """
    Result of grading a word; everything `upsert` needs to persist.
    """
    familiarity: int
    review_count: int
    ease_factor: float
    interval_days: int
    last_studied_at: datetime
    next_review_at: datetime

    def to_record(self) -> ReviewRecord:
        return ReviewRecord(
            familiarity=self.familiarity,
            review_count=self.review_count,
            ease_factor=self.ease_factor,
            interval_days=self.interval_days,
            last_studied_at=self.last_studied_at,
            next_review_at=self.next_review_at,
        )


def parse_grade(value: object) -> Grade:
    """
    Convert user input to a Grade.

    Accepts Grade members, integers and integer strings. Booleans and
    non-integral numbers are rejected.

    Raises:
        InvalidGradeError: if value is not one of 1, 2, 3, 4
    """
    if isinstance(value, Grade):
        return value
    if isinstance(value, bool):
        raise InvalidGradeError(value)

    number: Optional[int] = None
    if isinstance(value, numbers.Integral):
        number = int(value)
    elif isinstance(value, numbers.Real) and float(value).is_integer():
        number = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        number = int(value.strip())

    if number is None:
        raise InvalidGradeError(value)
    try:
        return Grade(number)
    except ValueError:
        raise InvalidGradeError(value) from None


def compute_next_schedule(
    record: Union[ReviewRecord, UnseenState, None],
    grade: Union[Grade, int],
    now: Optional[datetime] = None
) -> Optional[ScheduleUpdate]:
    """
    Compute the next schedule for a graded word.

    This is the core scheduling algorithm. No database calls.

    Args:
        record: Current review record, or None/UNSEEN for a word never graded
        grade: User grade (1-4)
        now: Grading timestamp (defaults to now, UTC)

    Returns:
        ScheduleUpdate for HARD/NORMAL/EASY, or None for FORGET (the record
        must not change; the session requeues the word instead)

    Raises:
        InvalidGradeError: if grade is outside 1-4
    """
    grade = parse_grade(grade)
    if grade == Grade.FORGET:
        return None

    state = record if record is not None else UNSEEN
    timestamp = ensure_utc(now) if now is not None else utc_now()

    new_ease = interval_updates.update_ease_factor(state.ease_factor, grade)
    new_interval = interval_updates.next_interval(
        previous_interval=state.interval_days,
        ease_factor=state.ease_factor,
        grade=grade,
        review_count=state.review_count,
    )

    return ScheduleUpdate(
        familiarity=int(grade),
        review_count=state.review_count + 1,
        ease_factor=new_ease,
        interval_days=new_interval,
        last_studied_at=timestamp,
        next_review_at=timestamp + timedelta(days=new_interval),
    )


def apply_schedule(
    record: Union[ReviewRecord, UnseenState, None],
    grade: Union[Grade, int],
    now: Optional[datetime] = None
) -> Optional[ReviewRecord]:
    """
    Convenience wrapper returning the new ReviewRecord (None for FORGET).
    """
    update = compute_next_schedule(record, grade, now)
    return update.to_record() if update is not None else None
