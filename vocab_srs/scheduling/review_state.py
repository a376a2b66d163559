"""
Review State - Words, Review Records and Study Items

Defines the state the scheduler reads and writes.

Key concepts:
- WordItem: an immutable entry of a word list
- ReviewRecord: latest review state for one (user, word) pair
- StudyItem: a word plus its record snapshot inside a session batch

A word without a ReviewRecord is unseen; there is no "empty" record.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vocab_srs.errors import DataIntegrityError
from vocab_srs.scheduling.constants import (
    INITIAL_EASE_FACTOR,
    MIN_EASE_FACTOR,
    MIN_INTERVAL_DAYS,
    UNSEEN_FAMILIARITY,
    UNSEEN_INTERVAL_DAYS,
    UNSEEN_REVIEW_COUNT,
)


class WordItem(BaseModel):
    """
    A single word of a word list.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    term: str = Field(min_length=1)
    definition: str = Field(min_length=1)
    phonetic_us: Optional[str] = None
    phonetic_uk: Optional[str] = None
    example: Optional[str] = None
    position: int = 0  # Insertion order within the word list

    @classmethod
    def from_raw(cls, data: Any) -> "WordItem":
        """
        Validate raw word data, failing fast on missing fields.
        """
        if isinstance(data, WordItem):
            return data
        if not isinstance(data, dict):
            raise DataIntegrityError(f"Word data must be a mapping, got {type(data).__name__}")
        payload = dict(data)
        if payload.get("id") is not None:
            payload["id"] = str(payload["id"])
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise DataIntegrityError(
                f"Malformed word {payload.get('id')!r}: invalid fields {', '.join(fields)}"
            ) from exc


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC (naive values are taken as UTC).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ReviewRecord:
    """
    Persistent review state for a single (user, word) pair.

    Invariant: next_review_at == last_studied_at + interval_days days.
    """
    familiarity: int
    review_count: int
    ease_factor: float
    interval_days: int
    last_studied_at: datetime
    next_review_at: datetime

    def __post_init__(self):
        if not 0 <= self.familiarity <= 4:
            raise DataIntegrityError(f"familiarity out of range: {self.familiarity}")
        if self.review_count < 0:
            raise DataIntegrityError(f"review_count must be >= 0, got {self.review_count}")
        if self.ease_factor < MIN_EASE_FACTOR:
            raise DataIntegrityError(f"ease_factor below floor: {self.ease_factor}")
        if self.interval_days < MIN_INTERVAL_DAYS:
            raise DataIntegrityError(f"interval_days must be >= 1, got {self.interval_days}")
        object.__setattr__(self, "last_studied_at", ensure_utc(self.last_studied_at))
        object.__setattr__(self, "next_review_at", ensure_utc(self.next_review_at))

    def is_due(self, now: datetime) -> bool:
        return self.next_review_at <= ensure_utc(now)

    def to_dict(self) -> dict:
        return {
            "familiarity": self.familiarity,
            "review_count": self.review_count,
            "ease_factor": self.ease_factor,
            "interval_days": self.interval_days,
            "last_studied_at": self.last_studied_at.isoformat(),
            "next_review_at": self.next_review_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReviewRecord":
        try:
            return cls(
                familiarity=int(data["familiarity"]),
                review_count=int(data["review_count"]),
                ease_factor=float(data["ease_factor"]),
                interval_days=int(data["interval_days"]),
                last_studied_at=_parse_timestamp(data["last_studied_at"]),
                next_review_at=_parse_timestamp(data["next_review_at"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DataIntegrityError(f"Malformed review record: {exc}") from exc


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class UnseenState:
    """
    Scheduling inputs for a word that has never been graded.
    """
    familiarity: int = UNSEEN_FAMILIARITY
    review_count: int = UNSEEN_REVIEW_COUNT
    ease_factor: float = INITIAL_EASE_FACTOR
    interval_days: int = UNSEEN_INTERVAL_DAYS


UNSEEN = UnseenState()


@dataclass(frozen=True)
class StudyItem:
    """
    One word inside a study batch, with its record snapshot.
    """
    word: WordItem
    record: Optional[ReviewRecord] = None
    needs_review: bool = False

    @property
    def word_id(self) -> str:
        return self.word.id

    @property
    def is_new(self) -> bool:
        return self.record is None

    @property
    def next_review_at(self) -> Optional[datetime]:
        return self.record.next_review_at if self.record else None

    def with_record(self, record: ReviewRecord) -> "StudyItem":
        return replace(self, record=record, needs_review=False)

    def deferred(self) -> "StudyItem":
        return replace(self, needs_review=True)

    def to_dict(self) -> dict:
        return {
            "word": self.word.model_dump(),
            "record": self.record.to_dict() if self.record else None,
            "needs_review": self.needs_review,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StudyItem":
        if not isinstance(data, dict) or "word" not in data:
            raise DataIntegrityError("Malformed study item snapshot")
        record_data = data.get("record")
        return cls(
            word=WordItem.from_raw(data["word"]),
            record=ReviewRecord.from_dict(record_data) if record_data else None,
            needs_review=bool(data.get("needs_review", False)),
        )


def due_cutoff(now: datetime, utc_offset_hours: int) -> datetime:
    """
    End of the local review day containing `now`, as aware UTC.

    Everything scheduled for "today" in the learner's timezone counts as due,
    even if its exact time of day has not been reached yet.
    """
    local_tz = timezone(timedelta(hours=utc_offset_hours))
    local_now = ensure_utc(now).astimezone(local_tz)
    end_local = local_now.replace(hour=23, minute=59, second=59, microsecond=999999)
    return end_local.astimezone(timezone.utc)


def local_day(value: datetime, utc_offset_hours: int):
    """Calendar date of `value` in the review timezone."""
    local_tz = timezone(timedelta(hours=utc_offset_hours))
    return ensure_utc(value).astimezone(local_tz).date()
