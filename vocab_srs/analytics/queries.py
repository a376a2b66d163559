"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from vocab_srs.store.sql_store import SqlReviewRecordStore

EVENT_COLUMNS = ["word_list_id", "word_id", "timestamp", "grade", "is_first_review", "day_local"]
RECORD_COLUMNS = ["word_list_id", "word_id", "review_count", "last_studied_at", "next_review_at"]


def to_local_days(timestamps: pd.Series, utc_offset_hours: int) -> pd.Series:
    """
    Map aware UTC timestamps to naive local midnights in the review timezone.
    """
    shifted = timestamps + pd.Timedelta(hours=utc_offset_hours)
    return shifted.dt.tz_localize(None).dt.normalize()


def load_review_events_df(
    store: SqlReviewRecordStore,
    user_id: str,
    utc_offset_hours: int,
    since: Optional[datetime] = None
) -> pd.DataFrame:
    """
    Load a learner's review events into a dataframe with a local day column.
    """
    rows = store.load_review_events(user_id, since=since)
    if not rows:
        return pd.DataFrame(columns=EVENT_COLUMNS)

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df["is_first_review"] = df["is_first_review"].astype(bool)
    df["day_local"] = to_local_days(df["timestamp"], utc_offset_hours)
    df = df.sort_values("timestamp").reset_index(drop=True)
    return df[EVENT_COLUMNS]


def load_records_df(store: SqlReviewRecordStore, user_id: str) -> pd.DataFrame:
    """
    Load a learner's current study records into a dataframe.
    """
    rows = store.load_records(user_id)
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)

    df = pd.DataFrame(rows)
    df["last_studied_at"] = pd.to_datetime(df["last_studied_at"], utc=True)
    df["next_review_at"] = pd.to_datetime(df["next_review_at"], utc=True)
    return df[RECORD_COLUMNS]
