"""
Ease Factor and Interval Updates

Implements the per-grade update rules for successful recalls.

Key principles:
- Lower grades shrink the ease factor, higher grades grow it
- The ease factor never drops below MIN_EASE_FACTOR
- Next interval grows from the previous one, scaled by the ease factor the
  word had before this grading; harder recalls grow it least
- The first successful grading always schedules a next-day review
"""

from __future__ import annotations

import math

from vocab_srs.scheduling.constants import (
    Grade,
    EASE_DELTA,
    EASE_PRECISION,
    EASY_BONUS,
    FIRST_INTERVAL_DAYS,
    HARD_INTERVAL_MULTIPLIER,
    MAX_INTERVAL_DAYS,
    MIN_EASE_FACTOR,
    MIN_INTERVAL_DAYS,
)


def update_ease_factor(ease_factor: float, grade: Grade) -> float:
    """
    Shift the ease factor by the grade's delta.

    Formula:
        EF' = max(MIN_EASE_FACTOR, EF + delta(grade))

    Args:
        ease_factor: Current ease factor
        grade: HARD, NORMAL or EASY

    Returns:
        New ease factor, rounded to EASE_PRECISION decimals
    """
    if grade == Grade.FORGET:
        raise ValueError("FORGET does not update the ease factor")

    new_ease = ease_factor + EASE_DELTA[grade]
    return round(max(MIN_EASE_FACTOR, new_ease), EASE_PRECISION)


def interval_multiplier(ease_factor: float, grade: Grade) -> float:
    """
    Growth factor applied to the previous interval.

    HARD grows by a fixed 1.2, NORMAL by the ease factor and EASY by the
    ease factor times EASY_BONUS. Since ease >= 1.3 > 1.2 the multiplier
    is ordered HARD <= NORMAL <= EASY for the same record.
    """
    if grade == Grade.HARD:
        return HARD_INTERVAL_MULTIPLIER
    if grade == Grade.NORMAL:
        return ease_factor
    if grade == Grade.EASY:
        return ease_factor * EASY_BONUS
    raise ValueError(f"No interval multiplier for {grade!r}")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def next_interval(
    previous_interval: int,
    ease_factor: float,
    grade: Grade,
    review_count: int
) -> int:
    """
    Compute the next interval in whole days.

    Args:
        previous_interval: Interval used for the last scheduling (days)
        ease_factor: Ease factor before this grading
        grade: HARD, NORMAL or EASY
        review_count: Reviews recorded before this grading

    Returns:
        Interval in days, clamped to [MIN_INTERVAL_DAYS, MAX_INTERVAL_DAYS]
    """
    if review_count == 0:
        return FIRST_INTERVAL_DAYS

    grown = _round_half_up(max(previous_interval, MIN_INTERVAL_DAYS) * interval_multiplier(ease_factor, grade))
    return max(MIN_INTERVAL_DAYS, min(grown, MAX_INTERVAL_DAYS))
