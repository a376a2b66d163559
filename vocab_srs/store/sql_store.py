"""
SQL review record store.

Implements ReviewRecordStore on top of SQLAlchemy. Every public method
runs in its own short session; driver failures are rolled back and raised
as PersistenceError.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocab_srs.errors import PersistenceError
from vocab_srs.scheduling.review_state import (
    ReviewRecord,
    StudyItem,
    WordItem,
    ensure_utc,
    utc_now,
)
from vocab_srs.store.base import ReviewRecordStore, UpsertResult
from vocab_srs.store.database import get_engine, init_db, make_session_factory
from vocab_srs.store.models import (
    ReviewEvent as ReviewEventModel,
    StudyRecord as StudyRecordModel,
    WordList as WordListModel,
    WordListWord as WordListWordModel,
)


def _word_from_row(row: WordListWordModel) -> WordItem:
    return WordItem.from_raw({
        "id": row.id,
        "term": row.term,
        "definition": row.definition,
        "phonetic_us": row.phonetic_us,
        "phonetic_uk": row.phonetic_uk,
        "example": row.example,
        "position": row.position,
    })


def _record_from_row(row: StudyRecordModel) -> ReviewRecord:
    return ReviewRecord.from_dict({
        "familiarity": row.familiarity,
        "review_count": row.review_count,
        "ease_factor": row.ease_factor,
        "interval_days": row.interval_days,
        "last_studied_at": row.last_studied_at,
        "next_review_at": row.next_review_at,
    })


class SqlReviewRecordStore(ReviewRecordStore):
    """
    ReviewRecordStore backed by a SQL database.

    Args:
        engine: SQLAlchemy engine (defaults to the DATABASE_URL engine)
        create_schema: Create missing tables on construction
    """

    def __init__(self, engine: Optional[Engine] = None, create_schema: bool = True):
        self.engine = engine or get_engine()
        self._session_factory = make_session_factory(self.engine)
        if create_schema:
            try:
                init_db(self.engine)
            except SQLAlchemyError as exc:
                raise PersistenceError(str(exc), operation="init_db") from exc

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(f"Store {operation} failed: {exc}")
            raise PersistenceError(str(exc), operation=operation) from exc
        finally:
            session.close()

    # ---- Core interface ----

    def fetch_due(self, user_id: str, word_list_id: str, now: datetime) -> list[StudyItem]:
        cutoff = ensure_utc(now)
        with self._session("fetch_due") as session:
            rows = session.query(StudyRecordModel, WordListWordModel).join(
                WordListWordModel, WordListWordModel.id == StudyRecordModel.word_id
            ).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id,
                StudyRecordModel.next_review_at <= cutoff
            ).order_by(
                StudyRecordModel.next_review_at.asc(),
                StudyRecordModel.id.asc()
            ).all()

            return [
                StudyItem(word=_word_from_row(word_row), record=_record_from_row(record_row))
                for record_row, word_row in rows
            ]

    def fetch_unstarted(
        self,
        word_list_id: str,
        exclude_word_ids: Iterable[str],
        limit: int,
        user_id: Optional[str] = None
    ) -> list[WordItem]:
        if limit <= 0:
            return []

        excluded = list(set(exclude_word_ids))
        with self._session("fetch_unstarted") as session:
            query = session.query(WordListWordModel).filter(
                WordListWordModel.word_list_id == word_list_id
            )
            if excluded:
                query = query.filter(WordListWordModel.id.notin_(excluded))
            if user_id is not None:
                started = select(StudyRecordModel.word_id).where(
                    StudyRecordModel.user_id == user_id,
                    StudyRecordModel.word_list_id == word_list_id
                )
                query = query.filter(WordListWordModel.id.notin_(started))

            rows = query.order_by(WordListWordModel.position.asc()).limit(limit).all()
            return [_word_from_row(row) for row in rows]

    def upsert(
        self,
        user_id: str,
        word_list_id: str,
        word_id: str,
        record: ReviewRecord
    ) -> UpsertResult:
        with self._session("upsert") as session:
            word = session.query(WordListWordModel).filter(
                WordListWordModel.id == word_id,
                WordListWordModel.word_list_id == word_list_id
            ).first()
            if word is None:
                return UpsertResult(False, f"Unknown word {word_id!r} in list {word_list_id!r}")

            db_record = session.query(StudyRecordModel).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id,
                StudyRecordModel.word_id == word_id
            ).first()

            ease_before = db_record.ease_factor if db_record is not None else None
            interval_before = db_record.interval_days if db_record is not None else None

            if db_record is None:
                db_record = StudyRecordModel(
                    user_id=user_id,
                    word_list_id=word_list_id,
                    word_id=word_id,
                )
                session.add(db_record)

            db_record.familiarity = record.familiarity
            db_record.review_count = record.review_count
            db_record.ease_factor = record.ease_factor
            db_record.interval_days = record.interval_days
            db_record.last_studied_at = ensure_utc(record.last_studied_at)
            db_record.next_review_at = ensure_utc(record.next_review_at)

            session.add(ReviewEventModel(
                user_id=user_id,
                word_list_id=word_list_id,
                word_id=word_id,
                timestamp=ensure_utc(record.last_studied_at),
                grade=record.familiarity,
                ease_factor_before=ease_before,
                interval_days_before=interval_before,
                review_count_after=record.review_count,
                ease_factor_after=record.ease_factor,
                interval_days_after=record.interval_days,
            ))

        return UpsertResult(True)

    # ---- Word list management ----

    def add_word_list(
        self,
        name: str,
        words: Iterable[dict] = (),
        word_list_id: Optional[str] = None
    ) -> str:
        """
        Create a word list, optionally with its words. Returns the list id.
        """
        list_id = word_list_id or uuid.uuid4().hex
        with self._session("add_word_list") as session:
            session.add(WordListModel(id=list_id, name=name, created_at=utc_now()))
        self.add_words(list_id, words)
        return list_id

    def add_words(self, word_list_id: str, words: Iterable[dict]) -> list[WordItem]:
        """
        Append words to a list, preserving the given order.

        Each word dict needs `term` and `definition`; `id` is generated
        when missing.
        """
        with self._session("add_words") as session:
            last_position = session.query(func.max(WordListWordModel.position)).filter(
                WordListWordModel.word_list_id == word_list_id
            ).scalar()
            position = -1 if last_position is None else last_position

            added: list[WordItem] = []
            for raw in words:
                position += 1
                item = WordItem.from_raw({
                    **raw,
                    "id": raw.get("id") or uuid.uuid4().hex,
                    "position": position,
                })
                session.add(WordListWordModel(
                    id=item.id,
                    word_list_id=word_list_id,
                    term=item.term,
                    definition=item.definition,
                    phonetic_us=item.phonetic_us,
                    phonetic_uk=item.phonetic_uk,
                    example=item.example,
                    position=item.position,
                ))
                added.append(item)
            return added

    def count_words(self, word_list_id: str) -> int:
        with self._session("count_words") as session:
            return session.query(func.count(WordListWordModel.id)).filter(
                WordListWordModel.word_list_id == word_list_id
            ).scalar() or 0

    # ---- Record queries ----

    def get_record(self, user_id: str, word_list_id: str, word_id: str) -> Optional[ReviewRecord]:
        """
        Load the review record, or None if the word is unseen.
        """
        with self._session("get_record") as session:
            row = session.query(StudyRecordModel).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id,
                StudyRecordModel.word_id == word_id
            ).first()
            return _record_from_row(row) if row is not None else None

    def count_due(self, user_id: str, word_list_id: str, now: datetime) -> int:
        with self._session("count_due") as session:
            return session.query(func.count(StudyRecordModel.id)).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id,
                StudyRecordModel.next_review_at <= ensure_utc(now)
            ).scalar() or 0

    def count_records(self, user_id: str, word_list_id: str) -> int:
        with self._session("count_records") as session:
            return session.query(func.count(StudyRecordModel.id)).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id
            ).scalar() or 0

    def reset_word_list(self, user_id: str, word_list_id: str) -> int:
        """
        Delete every study record of the user for a word list.

        The review event log is kept. Returns the number of deleted records.
        """
        with self._session("reset_word_list") as session:
            deleted = session.query(StudyRecordModel).filter(
                StudyRecordModel.user_id == user_id,
                StudyRecordModel.word_list_id == word_list_id
            ).delete(synchronize_session=False)
        logger.info(f"Reset {deleted} study records for user {user_id}, list {word_list_id}")
        return deleted

    def load_records(self, user_id: str) -> list[dict]:
        """
        All study records of a user as plain dicts (for analytics).
        """
        with self._session("load_records") as session:
            rows = session.query(StudyRecordModel).filter(
                StudyRecordModel.user_id == user_id
            ).all()
            return [
                {
                    "word_list_id": row.word_list_id,
                    "word_id": row.word_id,
                    "familiarity": row.familiarity,
                    "review_count": row.review_count,
                    "ease_factor": row.ease_factor,
                    "interval_days": row.interval_days,
                    "last_studied_at": ensure_utc(row.last_studied_at),
                    "next_review_at": ensure_utc(row.next_review_at),
                }
                for row in rows
            ]

    def load_review_events(self, user_id: str, since: Optional[datetime] = None) -> list[dict]:
        """
        Review events of a user, oldest first.
        """
        with self._session("load_review_events") as session:
            query = session.query(ReviewEventModel).filter(
                ReviewEventModel.user_id == user_id
            )
            if since is not None:
                query = query.filter(ReviewEventModel.timestamp >= ensure_utc(since))
            rows = query.order_by(ReviewEventModel.timestamp.asc(), ReviewEventModel.id.asc()).all()
            return [
                {
                    "word_list_id": row.word_list_id,
                    "word_id": row.word_id,
                    "timestamp": ensure_utc(row.timestamp),
                    "grade": row.grade,
                    "review_count_after": row.review_count_after,
                    "is_first_review": row.interval_days_before is None,
                }
                for row in rows
            ]
