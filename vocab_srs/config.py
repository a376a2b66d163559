"""
Environment-driven configuration and logging setup.

Values come from the process environment, with a local .env file loaded
first (python-dotenv). Nothing here opens a connection.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()


DEFAULT_DAILY_GOAL = 10
DEFAULT_UTC_OFFSET_HOURS = 8  # Review day boundary (UTC+8)
DEFAULT_PROGRESS_DIR = Path.home() / ".vocab_srs" / "progress"
DEFAULT_PROGRESS_EXPIRY_HOURS = 24
DEFAULT_RETRY_ATTEMPTS = 3

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for study sessions.
    """
    daily_goal: int = DEFAULT_DAILY_GOAL
    utc_offset_hours: int = DEFAULT_UTC_OFFSET_HOURS
    due_at_end_of_day: bool = True
    progress_dir: Path = DEFAULT_PROGRESS_DIR
    progress_expiry_hours: int = DEFAULT_PROGRESS_EXPIRY_HOURS
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    log_level: str = "INFO"

    def __post_init__(self):
        if self.daily_goal < 0:
            raise ValueError("daily_goal must be >= 0")
        if self.retry_attempts < 1:
            raise ValueError("retry_attempts must be >= 1")
        if not -12 <= self.utc_offset_hours <= 14:
            raise ValueError("utc_offset_hours must be within [-12, 14]")


def load_settings() -> Settings:
    """
    Build Settings from environment variables.
    """
    progress_dir = os.getenv("PROGRESS_DIR")
    return Settings(
        daily_goal=_env_int("DAILY_GOAL", DEFAULT_DAILY_GOAL),
        utc_offset_hours=_env_int("REVIEW_UTC_OFFSET_HOURS", DEFAULT_UTC_OFFSET_HOURS),
        due_at_end_of_day=_env_bool("DUE_AT_END_OF_DAY", True),
        progress_dir=Path(progress_dir).expanduser() if progress_dir else DEFAULT_PROGRESS_DIR,
        progress_expiry_hours=_env_int("PROGRESS_EXPIRY_HOURS", DEFAULT_PROGRESS_EXPIRY_HOURS),
        retry_attempts=_env_int("STORE_RETRY_ATTEMPTS", DEFAULT_RETRY_ATTEMPTS),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def configure_logging(level: str = "INFO") -> None:
    """
    Replace loguru's default sink with a compact stderr sink.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
