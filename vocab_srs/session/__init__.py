"""Study session orchestration and resumable progress."""

from vocab_srs.session.orchestrator import (
    GradeOutcome,
    SessionProgress,
    SessionStatus,
    StudySession,
)
from vocab_srs.session.progress_store import (
    JsonFileProgressStore,
    MemoryProgressStore,
    ProgressStore,
    SessionState,
    progress_key,
)

__all__ = [
    "GradeOutcome",
    "SessionProgress",
    "SessionStatus",
    "StudySession",
    "JsonFileProgressStore",
    "MemoryProgressStore",
    "ProgressStore",
    "SessionState",
    "progress_key",
]
