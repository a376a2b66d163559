"""
Metric computations for progress dashboards.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

import pandas as pd


def build_day_index(today: date, days: int) -> pd.DatetimeIndex:
    """
    Dense local-day index of `days` days ending today.
    """
    if days <= 0:
        return pd.DatetimeIndex([])
    return pd.date_range(end=pd.Timestamp(today), periods=days, freq="D")


def study_days(events_df: pd.DataFrame) -> set[date]:
    """
    Local calendar days with at least one review.
    """
    if events_df.empty:
        return set()
    return set(pd.DatetimeIndex(events_df["day_local"].unique()).date)


def compute_streaks(days: Iterable[date], today: date) -> tuple[int, int]:
    """
    Current and longest run of consecutive study days.

    The current streak still counts when today has no reviews yet, as long
    as yesterday had some.
    """
    day_set = set(days)
    if not day_set:
        return 0, 0

    ordered = sorted(day_set)
    longest = run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        run = run + 1 if (cur - prev).days == 1 else 1
        longest = max(longest, run)

    anchor = today if today in day_set else today - timedelta(days=1)
    current = 0
    while anchor in day_set:
        current += 1
        anchor -= timedelta(days=1)
    return current, longest


def compute_day_counts(events_df: pd.DataFrame, day: date) -> tuple[int, int, int]:
    """
    (studied, new, reviewed) unique word counts for one local day.
    """
    if events_df.empty:
        return 0, 0, 0

    on_day = events_df[events_df["day_local"] == pd.Timestamp(day)]
    studied = int(on_day["word_id"].nunique())
    new = int(on_day.loc[on_day["is_first_review"], "word_id"].nunique())
    return studied, new, studied - new


def compute_daily_studied(events_df: pd.DataFrame, day_index: pd.DatetimeIndex) -> pd.Series:
    """
    Unique words studied per local day, zero-filled over day_index.
    """
    if len(day_index) == 0:
        return pd.Series(dtype="int64")
    if events_df.empty:
        return pd.Series(0, index=day_index, dtype="int64")

    daily = events_df.groupby("day_local")["word_id"].nunique()
    return daily.reindex(day_index, fill_value=0).astype("int64")


def compute_due_count(records_df: pd.DataFrame, cutoff: datetime) -> int:
    """
    Records whose next review is at or before cutoff.
    """
    if records_df.empty:
        return 0
    return int((records_df["next_review_at"] <= pd.Timestamp(cutoff)).sum())
