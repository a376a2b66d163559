"""
Types for progress dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StudyOverview:
    """
    Headline numbers for one learner across all word lists.
    """
    total_words_studied: int
    word_list_count: int
    studied_today: int
    new_today: int
    reviewed_today: int
    due_today: int
    total_study_days: int
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class WordListProgress:
    """
    Progress of one learner on one word list.
    """
    word_list_id: str
    total_words: int
    learned: int
    unstarted: int
    due_today: int

    @property
    def completion(self) -> float:
        if self.total_words == 0:
            return 0.0
        return self.learned / self.total_words
