"""
Service layer to assemble progress dashboards.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import pandas as pd

from vocab_srs.analytics.metrics import (
    build_day_index,
    compute_daily_studied,
    compute_day_counts,
    compute_due_count,
    compute_streaks,
    study_days,
)
from vocab_srs.analytics.queries import load_records_df, load_review_events_df
from vocab_srs.analytics.types import StudyOverview, WordListProgress
from vocab_srs.config import DEFAULT_UTC_OFFSET_HOURS
from vocab_srs.scheduling import due_cutoff, ensure_utc, local_day, utc_now
from vocab_srs.store.sql_store import SqlReviewRecordStore


def build_study_overview(
    store: SqlReviewRecordStore,
    user_id: str,
    now: Optional[datetime] = None,
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
) -> StudyOverview:
    """
    Build the headline numbers of the dashboard for one learner.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    today = local_day(now, utc_offset_hours)

    events_df = load_review_events_df(store, user_id, utc_offset_hours)
    records_df = load_records_df(store, user_id)

    days = study_days(events_df)
    current_streak, longest_streak = compute_streaks(days, today)
    studied_today, new_today, reviewed_today = compute_day_counts(events_df, today)

    return StudyOverview(
        total_words_studied=len(records_df),
        word_list_count=int(records_df["word_list_id"].nunique()) if not records_df.empty else 0,
        studied_today=studied_today,
        new_today=new_today,
        reviewed_today=reviewed_today,
        due_today=compute_due_count(records_df, due_cutoff(now, utc_offset_hours)),
        total_study_days=len(days),
        current_streak=current_streak,
        longest_streak=longest_streak,
    )


def build_daily_series(
    store: SqlReviewRecordStore,
    user_id: str,
    days: int = 30,
    now: Optional[datetime] = None,
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
) -> pd.Series:
    """
    Words studied per local day over the last `days` days (7/30/90 ranges).
    """
    now = ensure_utc(now) if now is not None else utc_now()
    day_index = build_day_index(local_day(now, utc_offset_hours), days)
    events_df = load_review_events_df(store, user_id, utc_offset_hours)
    return compute_daily_studied(events_df, day_index)


def build_word_list_progress(
    store: SqlReviewRecordStore,
    user_id: str,
    word_list_id: str,
    now: Optional[datetime] = None,
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
) -> WordListProgress:
    """
    Learned / unstarted / due counts for one word list.
    """
    now = ensure_utc(now) if now is not None else utc_now()
    total = store.count_words(word_list_id)
    learned = store.count_records(user_id, word_list_id)
    return WordListProgress(
        word_list_id=word_list_id,
        total_words=total,
        learned=learned,
        unstarted=max(0, total - learned),
        due_today=store.count_due(user_id, word_list_id, due_cutoff(now, utc_offset_hours)),
    )
