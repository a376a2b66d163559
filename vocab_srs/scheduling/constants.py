"""
Scheduling Constants and Parameters

All tunable parameters for the ease-factor scheduler in one place.
The update rule is SM-2 style: the grade shifts the ease factor, and the
ease factor scales the next interval.
"""

from enum import IntEnum


# ---- Grades ----

class Grade(IntEnum):
    """User self-assessment of recall at review time."""
    FORGET = 1  # Could not recall; requeued within the session
    HARD = 2    # Recalled with high effort
    NORMAL = 3  # Recalled normally
    EASY = 4    # Recalled instantly


# ---- Ease Factor ----

INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
EASE_PRECISION = 2  # Decimal places kept on the stored ease factor

EASE_DELTA = {
    Grade.HARD: -0.15,
    Grade.NORMAL: 0.0,
    Grade.EASY: +0.10,
}


# ---- Intervals (days) ----

FIRST_INTERVAL_DAYS = 1
MIN_INTERVAL_DAYS = 1
MAX_INTERVAL_DAYS = 365

HARD_INTERVAL_MULTIPLIER = 1.2   # Independent of ease; smallest growth
EASY_BONUS = 1.3                 # Applied on top of the ease factor


# ---- Unseen defaults ----

UNSEEN_FAMILIARITY = 0
UNSEEN_INTERVAL_DAYS = 1
UNSEEN_REVIEW_COUNT = 0
