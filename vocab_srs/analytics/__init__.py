"""
Analytics package exports.
"""

from vocab_srs.analytics.service import (
    build_daily_series,
    build_study_overview,
    build_word_list_progress,
)
from vocab_srs.analytics.types import StudyOverview, WordListProgress

__all__ = [
    "build_daily_series",
    "build_study_overview",
    "build_word_list_progress",
    "StudyOverview",
    "WordListProgress",
]
