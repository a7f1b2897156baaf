"""Storage module for persistence."""

from .cache import ProgressCache
from .database import ProgressStore, SqliteProgressStore
from .progress import ANONYMOUS_USER, ProgressField, ProgressRecord, progress_key

__all__ = [
    "ANONYMOUS_USER",
    "ProgressCache",
    "ProgressField",
    "ProgressRecord",
    "ProgressStore",
    "SqliteProgressStore",
    "progress_key",
]
