"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest
from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from vocab_srs.config import Settings
from vocab_srs.errors import PersistenceError
from vocab_srs.scheduling import ReviewRecord, StudyItem, WordItem
from vocab_srs.session import MemoryProgressStore
from vocab_srs.store import ReviewRecordStore, SqlReviewRecordStore, UpsertResult

# 2026-03-02 10:00 in UTC+8 (local day 2026-03-02)
FIXED_NOW = datetime(2026, 3, 2, 2, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (in-memory SQLite)")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def quiet_logs():
    """Keep loguru output out of test reports."""
    logger.remove()
    yield
    logger.remove()


def make_word(index: int, list_prefix: str = "w") -> WordItem:
    return WordItem(
        id=f"{list_prefix}{index}",
        term=f"term{index}",
        definition=f"definition {index}",
        position=index,
    )


def make_record(
    next_review_at: datetime,
    interval_days: int = 1,
    review_count: int = 1,
    ease_factor: float = 2.5,
    familiarity: int = 3,
) -> ReviewRecord:
    return ReviewRecord(
        familiarity=familiarity,
        review_count=review_count,
        ease_factor=ease_factor,
        interval_days=interval_days,
        last_studied_at=next_review_at - timedelta(days=interval_days),
        next_review_at=next_review_at,
    )


class InMemoryStore(ReviewRecordStore):
    """
    Dict-backed store double with failure injection.
    """

    def __init__(self, words: Iterable[WordItem] = (), word_list_id: str = "list-1"):
        self.words: dict[str, list[WordItem]] = {word_list_id: list(words)}
        self.records: dict[tuple[str, str, str], ReviewRecord] = {}
        self.upserts: list[tuple[str, str, str, ReviewRecord]] = []
        self.fetch_failures = 0
        self.upsert_failures = 0
        self.reject_upserts = False
        self.on_upsert = None

    def _word(self, word_list_id: str, word_id: str) -> Optional[WordItem]:
        for word in self.words.get(word_list_id, []):
            if word.id == word_id:
                return word
        return None

    def fetch_due(self, user_id, word_list_id, now):
        if self.fetch_failures:
            self.fetch_failures -= 1
            raise PersistenceError("connection refused", operation="fetch_due")
        return [
            StudyItem(word=self._word(list_id, word_id), record=record)
            for (uid, list_id, word_id), record in self.records.items()
            if uid == user_id and list_id == word_list_id and record.is_due(now)
        ]

    def fetch_unstarted(self, word_list_id, exclude_word_ids, limit, user_id=None):
        excluded = set(exclude_word_ids)
        if user_id is not None:
            excluded |= {
                word_id for (uid, list_id, word_id) in self.records
                if uid == user_id and list_id == word_list_id
            }
        words = [w for w in self.words.get(word_list_id, []) if w.id not in excluded]
        return words[:max(limit, 0)]

    def upsert(self, user_id, word_list_id, word_id, record):
        if self.on_upsert is not None:
            self.on_upsert()
        if self.upsert_failures:
            self.upsert_failures -= 1
            raise PersistenceError("timeout", operation="upsert")
        if self.reject_upserts:
            return UpsertResult(False, "row level security violation")
        self.records[(user_id, word_list_id, word_id)] = record
        self.upserts.append((user_id, word_list_id, word_id, record))
        return UpsertResult(True)


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def words():
    return [make_word(i) for i in range(8)]


@pytest.fixture
def memory_store(words):
    return InMemoryStore(words)


@pytest.fixture
def progress_store():
    return MemoryProgressStore()


@pytest.fixture
def settings():
    return Settings(daily_goal=3, retry_attempts=3)


@pytest.fixture
def no_sleep():
    delays: list[float] = []
    return delays.append


@pytest.fixture
def sqlite_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(sqlite_engine):
    return SqlReviewRecordStore(engine=sqlite_engine)
