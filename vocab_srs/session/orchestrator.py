"""
Study session lifecycle.

A session walks one user through today's batch for one word list:

    LOADING -> READY -> PRESENTING -> COMPLETE

- FORGET moves the current word to the end of the in-memory queue; nothing
  is written to the store and the next word slides into the same position.
- HARD/NORMAL/EASY computes the next schedule, upserts it, then advances.
- Progress (index + queue snapshot) is saved after every answer and on
  pause, and cleared when the session completes or is restarted.

The session owns its queue exclusively; the store never sees FORGET.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger

from vocab_srs.config import Settings
from vocab_srs.errors import (
    ConcurrentGradingError,
    DataIntegrityError,
    PersistenceError,
    SessionStateError,
)
from vocab_srs.scheduling import (
    EMPTY_BATCH,
    Grade,
    StudyBatch,
    StudyItem,
    compute_next_schedule,
    due_cutoff,
    ensure_utc,
    parse_grade,
    select_daily_batch,
    utc_now,
)
from vocab_srs.session.progress_store import ProgressStore, SessionState, progress_key
from vocab_srs.store.base import ReviewRecordStore
from vocab_srs.store.retry import call_with_retry


class SessionStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    PRESENTING = "presenting"
    COMPLETE = "complete"


@dataclass(frozen=True)
class GradeOutcome:
    """
    What happened to the graded item.
    """
    grade: Grade
    item: StudyItem
    requeued: bool
    persisted: bool
    completed: bool
    next_item: Optional[StudyItem]


@dataclass(frozen=True)
class SessionProgress:
    """
    Counters for a progress bar or summary screen.
    """
    total: int
    position: int
    remaining: int
    reviewed: int       # Items that already had a review record when loaded
    new: int            # Items that were unseen when loaded
    graded: int         # Successful gradings this session
    requeued: int       # FORGET answers this session


def _coerce_due_item(item: Any) -> StudyItem:
    if isinstance(item, StudyItem):
        return item
    if isinstance(item, dict):
        return StudyItem.from_dict(item)
    raise DataIntegrityError(f"Unexpected due item type: {type(item).__name__}")


class StudySession:
    """
    Runs one study session for (user_id, word_list_id).

    Args:
        user_id: Learner identifier (passed explicitly, never ambient)
        word_list_id: Word list being studied
        store: Review record store
        progress_store: Local resumable storage
        settings: Session settings (daily goal, due cutoff, retries)
        clock: Callable returning the current aware datetime
        sleep: Backoff sleep used between read retries
    """

    def __init__(
        self,
        user_id: str,
        word_list_id: str,
        store: ReviewRecordStore,
        progress_store: ProgressStore,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        sleep: Optional[Callable[[float], None]] = None
    ):
        if not user_id or not word_list_id:
            raise ValueError("StudySession requires a user_id and a word_list_id")

        self.user_id = str(user_id)
        self.word_list_id = str(word_list_id)
        self.store = store
        self.progress_store = progress_store
        self.settings = settings or Settings()
        self._clock = clock or utc_now
        self._sleep = sleep

        self.status = SessionStatus.LOADING
        self.batch: StudyBatch = EMPTY_BATCH
        self._queue: list[StudyItem] = []
        self._index = 0
        self._resume_index = 0
        self._graded = 0
        self._requeued = 0
        self._in_flight = threading.Lock()

    # ---- Read-only views ----

    @property
    def key(self) -> str:
        return progress_key(self.user_id, self.word_list_id)

    @property
    def items(self) -> tuple[StudyItem, ...]:
        return tuple(self._queue)

    @property
    def position(self) -> int:
        return self._index

    @property
    def current_item(self) -> Optional[StudyItem]:
        if self.status != SessionStatus.PRESENTING:
            return None
        return self._queue[self._index]

    @property
    def is_complete(self) -> bool:
        return self.status == SessionStatus.COMPLETE

    def progress(self) -> SessionProgress:
        reviewed = sum(1 for item in self.batch if not item.is_new)
        return SessionProgress(
            total=len(self._queue),
            position=self._index,
            remaining=max(0, len(self._queue) - self._index),
            reviewed=reviewed,
            new=len(self.batch) - reviewed,
            graded=self._graded,
            requeued=self._requeued,
        )

    # ---- Lifecycle ----

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now) if now is not None else ensure_utc(self._clock())

    def _read(self, fn, operation: str):
        return call_with_retry(
            fn,
            operation=operation,
            attempts=self.settings.retry_attempts,
            sleep=self._sleep,
        )

    def load(self, now: Optional[datetime] = None) -> StudyBatch:
        """
        Fetch today's batch and restore saved progress.

        Raises:
            PersistenceError: store unavailable after retries (state stays LOADING)
            DataIntegrityError: fetched data is malformed (state stays LOADING)
        """
        if self.status != SessionStatus.LOADING:
            raise SessionStateError(f"Cannot load a session in state {self.status.value}")

        now = self._now(now)
        cutoff = due_cutoff(now, self.settings.utc_offset_hours) if self.settings.due_at_end_of_day else now

        due = self._read(
            lambda: self.store.fetch_due(self.user_id, self.word_list_id, cutoff),
            "fetch_due",
        )
        due_items = [_coerce_due_item(item) for item in due]
        new_words = self._read(
            lambda: self.store.fetch_unstarted(
                self.word_list_id,
                [item.word_id for item in due_items],
                self.settings.daily_goal,
                user_id=self.user_id,
            ),
            "fetch_unstarted",
        )
        batch = select_daily_batch(due_items, new_words, self.settings.daily_goal)

        self.batch = batch
        self._queue = list(batch.items)
        self._index = 0
        self._resume_index = 0
        self._graded = 0
        self._requeued = 0

        saved = self.progress_store.load(
            self.key, now=now, utc_offset_hours=self.settings.utc_offset_hours
        )
        if saved is not None and self._queue:
            self._restore(saved)

        if not self._queue:
            logger.info(f"Nothing to study for user {self.user_id}, list {self.word_list_id}")
            self.progress_store.clear(self.key)
            self.status = SessionStatus.COMPLETE
        else:
            logger.info(
                f"Loaded session for user {self.user_id}, list {self.word_list_id}: "
                f"{batch.due_count} due, {batch.new_count} new"
            )
            self.status = SessionStatus.READY
        return batch

    def _restore(self, saved: SessionState) -> None:
        """
        Re-apply saved progress to the freshly loaded queue.

        Words graded before the saved index keep their slots. Saved order is
        kept for the remaining words still in the fresh batch (with their
        fresh records); those no longer due are dropped. Fresh due words
        that sit before the saved index, or are missing from the snapshot,
        are queued after the remaining words so they are still presented.
        """
        fresh = {item.word_id: item for item in self._queue}
        graded: list[StudyItem] = []
        pending: list[StudyItem] = []
        due_again: list[StudyItem] = []
        seen: set[str] = set()

        for position, raw in enumerate(saved.batch_snapshot):
            try:
                snap = StudyItem.from_dict(raw)
            except DataIntegrityError as exc:
                logger.warning(f"Ignoring malformed progress snapshot for {self.key}: {exc}")
                return

            if snap.word_id in seen:
                continue
            if snap.word_id in fresh:
                item = fresh[snap.word_id]
                if snap.needs_review:
                    item = item.deferred()
                (due_again if position < saved.current_index else pending).append(item)
                seen.add(snap.word_id)
            elif position < saved.current_index:
                graded.append(snap)
                seen.add(snap.word_id)

        for item in self._queue:
            if item.word_id not in seen and not item.is_new:
                due_again.append(item)

        restored = graded + pending + due_again
        if not any(item.word_id in fresh for item in restored):
            return

        self._queue = restored
        self._resume_index = min(len(graded), len(restored) - 1)
        logger.info(f"Restored progress for {self.key} at position {self._resume_index}")

    def start(self) -> Optional[StudyItem]:
        """
        Begin presenting at the resumed position (or 0).
        """
        if self.status == SessionStatus.COMPLETE:
            return None
        if self.status != SessionStatus.READY:
            raise SessionStateError(f"Cannot start a session in state {self.status.value}")

        self._index = self._resume_index
        self.status = SessionStatus.PRESENTING
        if self._index >= len(self._queue):
            self._complete()
            return None
        return self.current_item

    def grade(self, value: object, now: Optional[datetime] = None) -> GradeOutcome:
        """
        Grade the current item.

        Raises:
            ConcurrentGradingError: a previous grading is still being saved
            InvalidGradeError: value is not 1-4
            SessionStateError: session is not presenting
            PersistenceError: the store rejected or failed the write; the
                position is unchanged so the same grading can be retried
        """
        if not self._in_flight.acquire(blocking=False):
            raise ConcurrentGradingError("A grading is already being saved for this session")
        try:
            grade = parse_grade(value)
            if self.status != SessionStatus.PRESENTING:
                raise SessionStateError(f"Cannot grade in state {self.status.value}")

            now = self._now(now)
            item = self._queue[self._index]
            if grade == Grade.FORGET:
                return self._requeue_current(item, grade, now)
            return self._persist_current(item, grade, now)
        finally:
            self._in_flight.release()

    def _requeue_current(self, item: StudyItem, grade: Grade, now: datetime) -> GradeOutcome:
        deferred = item.deferred()
        del self._queue[self._index]
        self._queue.append(deferred)
        self._requeued += 1
        logger.debug(f"Requeued {item.word_id} ({item.word.term}) to the end of the session")
        self._autosave(now)
        return GradeOutcome(
            grade=grade,
            item=deferred,
            requeued=True,
            persisted=False,
            completed=False,
            next_item=self.current_item,
        )

    def _persist_current(self, item: StudyItem, grade: Grade, now: datetime) -> GradeOutcome:
        update = compute_next_schedule(item.record, grade, now)
        record = update.to_record()

        result = self.store.upsert(self.user_id, self.word_list_id, item.word_id, record)
        if not result.success:
            raise PersistenceError(result.message or "upsert rejected", operation="upsert")

        updated = item.with_record(record)
        self._queue[self._index] = updated
        self._index += 1
        self._graded += 1
        logger.debug(
            f"Graded {item.word_id} as {grade.name}: next review in {record.interval_days} day(s)"
        )

        if self._index >= len(self._queue):
            self._complete()
        else:
            self._autosave(now)

        return GradeOutcome(
            grade=grade,
            item=updated,
            requeued=False,
            persisted=True,
            completed=self.is_complete,
            next_item=self.current_item,
        )

    def _snapshot(self) -> SessionState:
        return SessionState(
            current_index=self._index,
            batch_snapshot=[item.to_dict() for item in self._queue],
        )

    def _autosave(self, now: datetime) -> None:
        self.progress_store.save(self.key, self._snapshot(), now=now)

    def _complete(self) -> None:
        self.status = SessionStatus.COMPLETE
        self.progress_store.clear(self.key)
        logger.info(
            f"Session complete for user {self.user_id}, list {self.word_list_id}: "
            f"{self._graded} graded, {self._requeued} requeued"
        )

    def pause(self, now: Optional[datetime] = None) -> Optional[SessionState]:
        """
        Save (current_index, queue) for a later resume.

        Only allowed between gradings. Returns the saved state, or None when
        there is nothing to resume.
        """
        if not self._in_flight.acquire(blocking=False):
            raise ConcurrentGradingError("Cannot pause while a grading is being saved")
        try:
            if self.status in (SessionStatus.LOADING, SessionStatus.COMPLETE):
                return None
            if self.status == SessionStatus.READY:
                self._index = self._resume_index
            state = self._snapshot()
            self.progress_store.save(self.key, state, now=self._now(now))
            logger.info(f"Paused {self.key} at position {self._index}")
            return state
        finally:
            self._in_flight.release()

    def restart(self, now: Optional[datetime] = None) -> StudyBatch:
        """
        Discard saved progress and the in-memory batch, then reload.
        """
        if not self._in_flight.acquire(blocking=False):
            raise ConcurrentGradingError("Cannot restart while a grading is being saved")
        try:
            self.progress_store.clear(self.key)
            self.batch = EMPTY_BATCH
            self._queue = []
            self._index = 0
            self._resume_index = 0
            self.status = SessionStatus.LOADING
        finally:
            self._in_flight.release()
        logger.info(f"Restarting {self.key}")
        return self.load(now)
