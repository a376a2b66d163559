"""Review record persistence: store interface, SQL implementation, retries."""

from vocab_srs.store.base import ReviewRecordStore, UpsertResult
from vocab_srs.store.database import (
    get_database_url,
    get_engine,
    get_session,
    init_db,
    reset_db,
)
from vocab_srs.store.retry import backoff_delay, call_with_retry
from vocab_srs.store.sql_store import SqlReviewRecordStore

__all__ = [
    "ReviewRecordStore",
    "UpsertResult",
    "SqlReviewRecordStore",
    "get_database_url",
    "get_engine",
    "get_session",
    "init_db",
    "reset_db",
    "backoff_delay",
    "call_with_retry",
]
