"""
Review record store interface.

The scheduling core never performs I/O itself; it reads query results from
and hands records to an implementation of ReviewRecordStore.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from vocab_srs.scheduling.review_state import ReviewRecord, StudyItem, WordItem


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of a record write."""
    success: bool
    message: Optional[str] = None


class ReviewRecordStore(ABC):
    """
    Persistence for per-(user, word) review records.

    Implementations raise PersistenceError on transport or driver failure.
    """

    @abstractmethod
    def fetch_due(self, user_id: str, word_list_id: str, now: datetime) -> list[StudyItem]:
        """
        Return items of the word list whose next_review_at <= now.
        """

    @abstractmethod
    def fetch_unstarted(
        self,
        word_list_id: str,
        exclude_word_ids: Iterable[str],
        limit: int,
        user_id: Optional[str] = None
    ) -> list[WordItem]:
        """
        Return up to `limit` words of the list in insertion order, skipping
        `exclude_word_ids` (and, when user_id is given, words the user has
        a record for).
        """

    @abstractmethod
    def upsert(
        self,
        user_id: str,
        word_list_id: str,
        word_id: str,
        record: ReviewRecord
    ) -> UpsertResult:
        """
        Insert or replace the record for (user, word list, word).
        """
