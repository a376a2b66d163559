"""
Tests for the study session state machine.
"""
from datetime import timedelta

import pytest

from conftest import FIXED_NOW, InMemoryStore, make_record, make_word
from vocab_srs.config import Settings
from vocab_srs.errors import (
    ConcurrentGradingError,
    DataIntegrityError,
    InvalidGradeError,
    PersistenceError,
    SessionStateError,
)
from vocab_srs.session import SessionState, SessionStatus, StudySession


@pytest.fixture
def make_session(memory_store, progress_store, settings, no_sleep):
    def _make(store=None, at=FIXED_NOW):
        return StudySession(
            "user-1",
            "list-1",
            store=store or memory_store,
            progress_store=progress_store,
            settings=settings,
            clock=lambda: at,
            sleep=no_sleep,
        )
    return _make


@pytest.fixture
def session(make_session):
    s = make_session()
    s.load()
    s.start()
    return s


def ids(session):
    return [item.word_id for item in session.items]


class TestLoad:
    def test_new_words_capped_by_goal(self, make_session):
        s = make_session()
        batch = s.load()
        assert s.status == SessionStatus.READY
        assert [item.word_id for item in batch] == ["w0", "w1", "w2"]
        assert s.current_item is None

    def test_due_words_come_first(self, make_session, memory_store):
        memory_store.records[("user-1", "list-1", "w5")] = make_record(FIXED_NOW - timedelta(days=1))
        memory_store.records[("user-1", "list-1", "w6")] = make_record(FIXED_NOW - timedelta(days=3))
        # due later today (local time) still counts
        memory_store.records[("user-1", "list-1", "w7")] = make_record(FIXED_NOW + timedelta(hours=5))
        # due tomorrow does not
        memory_store.records[("user-1", "list-1", "w4")] = make_record(FIXED_NOW + timedelta(days=1))

        s = make_session()
        batch = s.load()

        assert ids(s) == ["w6", "w5", "w7", "w0", "w1", "w2"]
        assert batch.due_count == 3
        assert s.progress().reviewed == 3
        assert s.progress().new == 3

    def test_exact_due_time_when_end_of_day_disabled(self, memory_store, progress_store, no_sleep):
        memory_store.records[("user-1", "list-1", "w7")] = make_record(FIXED_NOW + timedelta(hours=5))
        s = StudySession(
            "user-1", "list-1", memory_store, progress_store,
            settings=Settings(daily_goal=0, due_at_end_of_day=False),
            clock=lambda: FIXED_NOW, sleep=no_sleep,
        )
        assert s.load().is_empty
        assert s.is_complete

    def test_empty_batch_completes(self, make_session, progress_store):
        s = make_session(InMemoryStore([]))
        progress_store.save(s.key, SessionState(current_index=0))

        assert s.load().is_empty
        assert s.status == SessionStatus.COMPLETE
        assert s.start() is None
        assert s.key not in progress_store

    def test_store_failure_is_retried(self, make_session, memory_store):
        memory_store.fetch_failures = 2
        s = make_session()
        s.load()
        assert s.status == SessionStatus.READY

    def test_store_unavailable_stays_loading(self, make_session, memory_store):
        memory_store.fetch_failures = 10
        s = make_session()
        with pytest.raises(PersistenceError):
            s.load()
        assert s.status == SessionStatus.LOADING
        assert len(s.items) == 0

        memory_store.fetch_failures = 0
        s.load()
        assert s.status == SessionStatus.READY

    def test_malformed_due_data_fails_fast(self, make_session, memory_store):
        memory_store.fetch_due = lambda user_id, word_list_id, now: [{"word": {"id": "x1", "term": "kat"}}]
        s = make_session()
        with pytest.raises(DataIntegrityError):
            s.load()
        assert s.status == SessionStatus.LOADING

    def test_load_twice_rejected(self, make_session):
        s = make_session()
        s.load()
        with pytest.raises(SessionStateError):
            s.load()

    def test_requires_user_and_list(self, memory_store, progress_store):
        with pytest.raises(ValueError):
            StudySession("", "list-1", memory_store, progress_store)


class TestGrade:
    def test_start_before_load_rejected(self, make_session):
        with pytest.raises(SessionStateError):
            make_session().start()

    def test_grade_before_start_rejected(self, make_session):
        s = make_session()
        s.load()
        with pytest.raises(SessionStateError):
            s.grade(3)

    def test_invalid_grade(self, session, memory_store):
        with pytest.raises(InvalidGradeError):
            session.grade(5)
        assert session.position == 0
        assert memory_store.upserts == []

    def test_successful_grade_persists_and_advances(self, session, memory_store):
        outcome = session.grade(3)

        assert outcome.persisted and not outcome.requeued
        assert session.position == 1
        assert session.current_item.word_id == "w1"
        user_id, list_id, word_id, record = memory_store.upserts[0]
        assert (user_id, list_id, word_id) == ("user-1", "list-1", "w0")
        assert record.review_count == 1
        assert record.interval_days == 1
        assert record.last_studied_at == FIXED_NOW
        assert session.items[0].record == record

    def test_forget_requeues_without_store_write(self, session, memory_store):
        before = ids(session)

        outcome = session.grade(1)

        assert outcome.requeued and not outcome.persisted
        assert memory_store.upserts == []
        assert session.position == 0
        assert session.current_item.word_id == "w1"
        assert ids(session) == ["w1", "w2", "w0"]
        assert sorted(ids(session)) == sorted(before)
        assert session.items[-1].needs_review
        assert session.progress().requeued == 1

    def test_forgotten_word_resurfaces(self, session):
        session.grade(1)
        session.grade(3)
        session.grade(3)
        assert session.current_item.word_id == "w0"
        assert session.current_item.needs_review

        outcome = session.grade(2)
        assert outcome.completed
        assert outcome.item.needs_review is False

    def test_forget_on_last_item_keeps_presenting(self, session):
        session.grade(3)
        session.grade(3)
        session.grade(1)
        assert session.status == SessionStatus.PRESENTING
        assert session.current_item.word_id == "w2"

    def test_upsert_failure_keeps_position(self, session, memory_store):
        memory_store.upsert_failures = 1
        with pytest.raises(PersistenceError):
            session.grade(4)
        assert session.position == 0
        assert session.current_item.word_id == "w0"
        assert session.current_item.is_new

        session.grade(4)
        assert session.position == 1

    def test_rejected_upsert_raises(self, session, memory_store):
        memory_store.reject_upserts = True
        with pytest.raises(PersistenceError, match="row level security"):
            session.grade(3)
        assert session.position == 0
        assert session.progress().graded == 0

    def test_second_grading_while_in_flight_is_rejected(self, session, memory_store):
        rejected = []

        def grade_again():
            for attempt in (lambda: session.grade(3), session.pause, session.restart):
                try:
                    attempt()
                except ConcurrentGradingError as exc:
                    rejected.append(exc)

        memory_store.on_upsert = grade_again
        session.grade(3)

        assert len(rejected) == 3
        assert len(memory_store.upserts) == 1
        assert session.position == 1

    def test_completion_clears_progress(self, session, progress_store):
        session.grade(3)
        assert session.key in progress_store

        session.grade(2)
        outcome = session.grade(4)

        assert outcome.completed
        assert outcome.next_item is None
        assert session.is_complete
        assert session.current_item is None
        assert session.key not in progress_store
        with pytest.raises(SessionStateError):
            session.grade(3)

    def test_progress_counts(self, session):
        session.grade(1)
        session.grade(3)
        progress = session.progress()
        assert progress.total == 3
        assert progress.position == 1
        assert progress.remaining == 2
        assert progress.graded == 1
        assert progress.requeued == 1


class TestPauseAndResume:
    def test_pause_then_load_resumes_same_item(self, session, make_session):
        session.grade(3)
        session.grade(1)
        presented = session.current_item
        queue = ids(session)

        state = session.pause()
        assert state.current_index == 1

        resumed = make_session()
        resumed.load()
        item = resumed.start()

        assert item.word_id == presented.word_id
        assert ids(resumed) == queue
        assert resumed.items[-1].needs_review

    def test_pause_without_progress(self, make_session):
        s = make_session()
        assert s.pause() is None

    def test_pause_before_start_saves_index_zero(self, make_session, progress_store):
        s = make_session()
        s.load()
        state = s.pause()
        assert state.current_index == 0
        assert progress_store.load(s.key).current_index == 0

    def test_resume_index_is_clamped(self, make_session, progress_store):
        s = make_session()
        progress_store.save(s.key, SessionState(
            current_index=99,
            batch_snapshot=[{"word": make_word(1).model_dump(), "record": None}],
        ), now=FIXED_NOW)
        s.load()
        item = s.start()
        assert s.position == len(s.items) - 1
        assert item is s.items[-1]

    def test_snapshot_without_fresh_words_is_ignored(self, make_session, progress_store):
        s = make_session()
        progress_store.save(s.key, SessionState(
            current_index=0,
            batch_snapshot=[{"word": {"id": "gone", "term": "x", "definition": "y"}, "record": None}],
        ), now=FIXED_NOW)
        s.load()
        assert s.start().word_id == "w0"

    def test_fresh_record_wins_over_snapshot(self, make_session, memory_store, progress_store):
        stale = make_record(FIXED_NOW - timedelta(days=10), interval_days=2, review_count=1)
        fresh = make_record(FIXED_NOW - timedelta(hours=1), interval_days=5, review_count=4)
        memory_store.records[("user-1", "list-1", "w5")] = fresh

        s = make_session()
        progress_store.save(s.key, SessionState(
            current_index=0,
            batch_snapshot=[{"word": make_word(5).model_dump(), "record": stale.to_dict()}],
        ), now=FIXED_NOW)
        s.load()
        assert s.start().record == fresh

    def test_restart_discards_progress(self, session, progress_store):
        session.grade(3)
        session.pause()

        batch = session.restart()

        assert session.status == SessionStatus.READY
        assert [item.word_id for item in batch] == ["w1", "w2", "w3"]
        assert session.key not in progress_store
        assert session.start().word_id == "w1"

    def test_autosave_uses_session_clock(self, session, progress_store):
        session.grade(3)
        saved = progress_store.load(session.key)
        assert saved.saved_at == FIXED_NOW.isoformat()

    def test_progress_from_previous_day_is_discarded(self, session, make_session, progress_store):
        session.grade(3)
        session.pause()

        # 09:00 local the next day, less than 24 hours later
        next_day = make_session(at=FIXED_NOW + timedelta(hours=23))
        batch = next_day.load()

        assert batch.due_count == 1
        assert ids(next_day) == ["w0", "w1", "w2", "w3"]
        assert next_day.key not in progress_store

        presented = [next_day.start().word_id]
        while not next_day.is_complete:
            next_day.grade(3)
            if next_day.current_item is not None:
                presented.append(next_day.current_item.word_id)
        assert presented == ["w0", "w1", "w2", "w3"]

    def test_graded_word_due_again_is_presented_after_resume(self, session, make_session, memory_store):
        session.grade(3)
        session.pause()
        memory_store.records[("user-1", "list-1", "w0")] = make_record(FIXED_NOW - timedelta(hours=1))

        resumed = make_session(at=FIXED_NOW + timedelta(hours=1))
        resumed.load()

        # daily goal of new words was already taken by w0, w1 and w2
        assert ids(resumed) == ["w1", "w2", "w0"]
        presented = [resumed.start().word_id]
        while not resumed.is_complete:
            resumed.grade(3)
            if resumed.current_item is not None:
                presented.append(resumed.current_item.word_id)
        assert presented == ["w1", "w2", "w0"]
        assert [upsert[2] for upsert in memory_store.upserts] == ["w0", "w1", "w2", "w0"]
