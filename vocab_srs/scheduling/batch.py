"""
Daily batch selection.

A batch is built from two pools:
1. Due pool: words whose review is due, most overdue first
2. New pool: never-graded words in list order, capped by the daily goal

The due pool is never capped; the daily goal only limits how many new
words are introduced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from vocab_srs.errors import DataIntegrityError
from vocab_srs.scheduling.review_state import StudyItem, WordItem


@dataclass(frozen=True)
class StudyBatch:
    """
    Ordered, immutable snapshot of a day's study items.
    """
    items: tuple[StudyItem, ...]
    due_count: int
    new_count: int

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[StudyItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> StudyItem:
        return self.items[index]

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def due_items(self) -> tuple[StudyItem, ...]:
        return self.items[:self.due_count]

    @property
    def new_items(self) -> tuple[StudyItem, ...]:
        return self.items[self.due_count:]


EMPTY_BATCH = StudyBatch(items=(), due_count=0, new_count=0)


def _as_new_item(word) -> StudyItem:
    if isinstance(word, StudyItem):
        if word.record is not None:
            raise DataIntegrityError(f"Word {word.word_id!r} already has a review record")
        return word
    return StudyItem(word=WordItem.from_raw(word))


def select_daily_batch(
    due_records: Iterable[StudyItem],
    candidate_new_words: Sequence,
    daily_goal: int
) -> StudyBatch:
    """
    Build today's batch: due reviews first, then new words.

    Args:
        due_records: Due items (word + record), in any order
        candidate_new_words: Unstarted WordItems (or raw dicts) in list order
        daily_goal: Maximum number of new words to introduce (>= 0)

    Returns:
        StudyBatch with due items sorted by next_review_at (stable) followed
        by at most daily_goal new words
    """
    if daily_goal < 0:
        raise ValueError(f"daily_goal must be >= 0, got {daily_goal}")

    due = list(due_records)
    for item in due:
        if item.record is None:
            raise DataIntegrityError(f"Due item {item.word_id!r} has no review record")
    due.sort(key=lambda item: item.record.next_review_at)

    due_ids = {item.word_id for item in due}
    new_items: list[StudyItem] = []
    for word in candidate_new_words:
        if len(new_items) >= daily_goal:
            break
        item = _as_new_item(word)
        if item.word_id in due_ids:
            continue
        new_items.append(item)

    return StudyBatch(
        items=tuple(due) + tuple(new_items),
        due_count=len(due),
        new_count=len(new_items),
    )
