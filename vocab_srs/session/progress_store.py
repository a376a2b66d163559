"""
Resumable study progress.

Saves (current_index, batch snapshot) per (user, word list) so a paused
session can be picked up later. Progress is stored as JSON files under
~/.vocab_srs/progress/ by default, or kept in memory.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from loguru import logger

from vocab_srs.scheduling.review_state import ensure_utc, local_day, utc_now


def progress_key(user_id: str, word_list_id: str) -> str:
    """
    Storage key for a user's progress on a word list.

    Each id is percent-encoded, so ':' only ever appears as the separator
    and distinct (user, list) pairs never share a key.
    """
    return f"study_progress:{quote(str(user_id), safe='')}:{quote(str(word_list_id), safe='')}"


@dataclass
class SessionState:
    """Serializable session progress."""

    current_index: int
    batch_snapshot: list[dict] = field(default_factory=list)
    saved_at: str = ""  # ISO format, UTC

    def is_expired(
        self,
        expiry_hours: Optional[int],
        now: Optional[datetime] = None,
        utc_offset_hours: Optional[int] = None
    ) -> bool:
        """
        Check if the saved progress is stale.

        Progress expires when the local review day (at utc_offset_hours)
        has changed since it was saved, or when it is older than
        expiry_hours.
        """
        if not self.saved_at:
            return False
        now = ensure_utc(now) if now is not None else utc_now()
        saved = ensure_utc(datetime.fromisoformat(self.saved_at))
        if utc_offset_hours is not None and local_day(saved, utc_offset_hours) != local_day(now, utc_offset_hours):
            return True
        if expiry_hours is None:
            return False
        return now - saved > timedelta(hours=expiry_hours)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "SessionState":
        """Create from dictionary."""
        return cls(
            current_index=int(data["current_index"]),
            batch_snapshot=list(data.get("batch_snapshot") or []),
            saved_at=data.get("saved_at") or "",
        )


class ProgressStore(ABC):
    """
    Synchronous key-value storage for session progress.
    """

    def __init__(self, expiry_hours: Optional[int] = None):
        self.expiry_hours = expiry_hours

    @abstractmethod
    def _write(self, key: str, data: dict) -> None: ...

    @abstractmethod
    def _read(self, key: str) -> Optional[dict]: ...

    @abstractmethod
    def clear(self, key: str) -> None:
        """Delete saved progress for key (no-op if absent)."""

    def save(self, key: str, state: SessionState, now: Optional[datetime] = None) -> None:
        """Save progress, stamping saved_at with `now` (default: current time)."""
        state.saved_at = (ensure_utc(now) if now is not None else utc_now()).isoformat()
        self._write(key, state.to_dict())

    def load(
        self,
        key: str,
        now: Optional[datetime] = None,
        utc_offset_hours: Optional[int] = None
    ) -> Optional[SessionState]:
        """
        Load saved progress, or None if absent, unreadable or expired.

        With utc_offset_hours set, progress saved on a different local day
        is expired as well.
        """
        data = self._read(key)
        if data is None:
            return None
        try:
            state = SessionState.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Discarding unreadable progress {key}: {exc}")
            return None
        try:
            expired = state.is_expired(self.expiry_hours, now=now, utc_offset_hours=utc_offset_hours)
        except ValueError as exc:
            logger.warning(f"Discarding progress {key} with bad timestamp: {exc}")
            return None
        if expired:
            logger.info(f"Progress {key} expired, discarding")
            self.clear(key)
            return None
        return state


class MemoryProgressStore(ProgressStore):
    """In-process progress storage."""

    def __init__(self, expiry_hours: Optional[int] = None):
        super().__init__(expiry_hours)
        self._data: dict[str, str] = {}

    def _write(self, key: str, data: dict) -> None:
        self._data[key] = json.dumps(data)

    def _read(self, key: str) -> Optional[dict]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def clear(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileProgressStore(ProgressStore):
    """
    Progress stored as one JSON file per key: {directory}/{encoded key}.json

    The key is percent-encoded into the file name, so distinct keys never
    map to the same file.
    """

    def __init__(self, directory: Path, expiry_hours: Optional[int] = None):
        super().__init__(expiry_hours)
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}.json"

    def _write(self, key: str, data: dict) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp_path.replace(path)

    def _read(self, key: str) -> Optional[dict]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Could not read progress file {path}: {exc}")
            return None

    def clear(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
