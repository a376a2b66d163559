"""
Scheduling - ease-factor spaced repetition for word lists

This package implements the pure scheduling core:
- Grade validation (1=forget, 2=hard, 3=normal, 4=easy)
- Ease factor and interval growth per grade
- Daily batch selection (due reviews + capped new words)

Quick start:
    from vocab_srs import scheduling

    update = scheduling.compute_next_schedule(record, scheduling.Grade.NORMAL)
    batch = scheduling.select_daily_batch(due_items, new_words, daily_goal=10)
"""

# Core algorithm
from vocab_srs.scheduling.scheduler import (
    ScheduleUpdate,
    apply_schedule,
    compute_next_schedule,
    parse_grade,
)
from vocab_srs.scheduling.batch import (
    EMPTY_BATCH,
    StudyBatch,
    select_daily_batch,
)

# State
from vocab_srs.scheduling.review_state import (
    UNSEEN,
    ReviewRecord,
    StudyItem,
    UnseenState,
    WordItem,
    due_cutoff,
    ensure_utc,
    local_day,
    utc_now,
)

# Constants and parameters
from vocab_srs.scheduling.constants import (
    Grade,
    INITIAL_EASE_FACTOR,
    MIN_EASE_FACTOR,
    EASE_DELTA,
    FIRST_INTERVAL_DAYS,
    MAX_INTERVAL_DAYS,
    HARD_INTERVAL_MULTIPLIER,
    EASY_BONUS,
)


__all__ = [
    # Core algorithm
    "ScheduleUpdate",
    "apply_schedule",
    "compute_next_schedule",
    "parse_grade",
    "EMPTY_BATCH",
    "StudyBatch",
    "select_daily_batch",

    # State
    "UNSEEN",
    "ReviewRecord",
    "StudyItem",
    "UnseenState",
    "WordItem",
    "due_cutoff",
    "ensure_utc",
    "local_day",
    "utc_now",

    # Enums
    "Grade",

    # Parameters
    "INITIAL_EASE_FACTOR",
    "MIN_EASE_FACTOR",
    "EASE_DELTA",
    "FIRST_INTERVAL_DAYS",
    "MAX_INTERVAL_DAYS",
    "HARD_INTERVAL_MULTIPLIER",
    "EASY_BONUS",
]
