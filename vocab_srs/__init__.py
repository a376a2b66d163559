"""
vocab_srs - spaced repetition scheduling for word-list vocabulary study.

Quick start:
    from vocab_srs import SqlReviewRecordStore, JsonFileProgressStore, StudySession, load_settings

    settings = load_settings()
    session = StudySession(
        user_id, word_list_id,
        store=SqlReviewRecordStore(),
        progress_store=JsonFileProgressStore(settings.progress_dir, settings.progress_expiry_hours),
        settings=settings,
    )
    session.load()
    item = session.start()
    session.grade(3)
"""

from vocab_srs.config import Settings, configure_logging, load_settings
from vocab_srs.errors import (
    ConcurrentGradingError,
    DataIntegrityError,
    InvalidGradeError,
    PersistenceError,
    SessionStateError,
    VocabSrsError,
)
from vocab_srs.scheduling import (
    Grade,
    ReviewRecord,
    StudyBatch,
    StudyItem,
    WordItem,
    compute_next_schedule,
    select_daily_batch,
)
from vocab_srs.session import (
    JsonFileProgressStore,
    MemoryProgressStore,
    SessionStatus,
    StudySession,
)
from vocab_srs.store import ReviewRecordStore, SqlReviewRecordStore, UpsertResult

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "configure_logging",
    "load_settings",
    "ConcurrentGradingError",
    "DataIntegrityError",
    "InvalidGradeError",
    "PersistenceError",
    "SessionStateError",
    "VocabSrsError",
    "Grade",
    "ReviewRecord",
    "StudyBatch",
    "StudyItem",
    "WordItem",
    "compute_next_schedule",
    "select_daily_batch",
    "JsonFileProgressStore",
    "MemoryProgressStore",
    "SessionStatus",
    "StudySession",
    "ReviewRecordStore",
    "SqlReviewRecordStore",
    "UpsertResult",
]
