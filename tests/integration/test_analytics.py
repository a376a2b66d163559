"""
Integration tests for progress dashboards.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import FIXED_NOW, make_record
from vocab_srs.analytics import (
    build_daily_series,
    build_study_overview,
    build_word_list_progress,
)
from vocab_srs.analytics.metrics import compute_streaks


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def history(sql_store):
    """
    Review history in UTC+8 local days:
    02-25 huis, 02-28 hond + boom, 03-01 hond, 03-02 kat + boom.
    """
    list_id = sql_store.add_word_list("Basics", [
        {"id": "hond", "term": "hond", "definition": "dog"},
        {"id": "kat", "term": "kat", "definition": "cat"},
        {"id": "huis", "term": "huis", "definition": "house"},
        {"id": "boom", "term": "boom", "definition": "tree"},
        {"id": "fiets", "term": "fiets", "definition": "bicycle"},
    ], word_list_id="basics")

    reviews = [
        ("huis", make_record(utc(2026, 2, 26, 2), interval_days=1, review_count=1)),
        ("hond", make_record(utc(2026, 3, 1, 2), interval_days=1, review_count=1)),
        ("boom", make_record(utc(2026, 3, 1, 2), interval_days=1, review_count=1)),
        ("hond", make_record(utc(2026, 3, 4, 2), interval_days=3, review_count=2)),
        ("kat", make_record(utc(2026, 3, 3, 1), interval_days=1, review_count=1)),
        ("boom", make_record(utc(2026, 3, 4, 1, 30), interval_days=2, review_count=2)),
    ]
    for word_id, record in reviews:
        assert sql_store.upsert("u1", list_id, word_id, record).success
    return list_id


class TestStreaks:
    def test_no_days(self):
        assert compute_streaks([], date(2026, 3, 2)) == (0, 0)

    def test_current_streak_counts_from_yesterday(self):
        days = [date(2026, 3, 1), date(2026, 2, 28)]
        assert compute_streaks(days, date(2026, 3, 2)) == (2, 2)

    def test_broken_streak(self):
        days = [date(2026, 2, 20), date(2026, 2, 21), date(2026, 2, 22), date(2026, 2, 27)]
        assert compute_streaks(days, date(2026, 3, 2)) == (0, 3)


class TestStudyOverview:
    def test_overview(self, sql_store, history):
        overview = build_study_overview(sql_store, "u1", now=FIXED_NOW, utc_offset_hours=8)

        assert overview.total_words_studied == 4
        assert overview.word_list_count == 1
        assert overview.studied_today == 2
        assert overview.new_today == 1
        assert overview.reviewed_today == 1
        assert overview.due_today == 1
        assert overview.total_study_days == 4
        assert overview.current_streak == 3
        assert overview.longest_streak == 3

    def test_streak_survives_until_end_of_next_day(self, sql_store, history):
        tomorrow = FIXED_NOW + timedelta(days=1)
        overview = build_study_overview(sql_store, "u1", now=tomorrow, utc_offset_hours=8)
        assert overview.studied_today == 0
        assert overview.current_streak == 3

    def test_unknown_user(self, sql_store, history):
        overview = build_study_overview(sql_store, "nobody", now=FIXED_NOW)
        assert overview.total_words_studied == 0
        assert overview.current_streak == 0
        assert overview.due_today == 0

    def test_local_day_boundary(self, sql_store, history):
        # 17:30 UTC on 03-01 is already 03-02 in UTC+8
        sql_store.upsert("u2", history, "kat", make_record(utc(2026, 3, 2, 17, 30), interval_days=1))

        at_utc8 = build_study_overview(sql_store, "u2", now=FIXED_NOW, utc_offset_hours=8)
        at_utc = build_study_overview(sql_store, "u2", now=FIXED_NOW, utc_offset_hours=0)

        assert at_utc8.studied_today == 1
        assert at_utc.studied_today == 0


class TestDailySeries:
    def test_zero_filled_series(self, sql_store, history):
        series = build_daily_series(sql_store, "u1", days=7, now=FIXED_NOW, utc_offset_hours=8)

        assert len(series) == 7
        assert series.index[-1].date() == date(2026, 3, 2)
        assert series.tolist() == [0, 1, 0, 0, 2, 1, 2]

    def test_empty_history(self, sql_store, history):
        series = build_daily_series(sql_store, "nobody", days=30, now=FIXED_NOW)
        assert len(series) == 30
        assert series.sum() == 0


class TestWordListProgress:
    def test_progress(self, sql_store, history):
        progress = build_word_list_progress(sql_store, "u1", history, now=FIXED_NOW, utc_offset_hours=8)

        assert progress.total_words == 5
        assert progress.learned == 4
        assert progress.unstarted == 1
        assert progress.due_today == 1
        assert progress.completion == pytest.approx(0.8)
