"""Persistence of the active timer across reloads and crashes."""

from timeflow.persistence.backends import (
    BackendError,
    JsonFileSnapshotBackend,
    SnapshotBackend,
    SqliteSnapshotBackend,
)
from timeflow.persistence.store import TIMER_KEY, TimerStore

__all__ = [
    "BackendError",
    "JsonFileSnapshotBackend",
    "SnapshotBackend",
    "SqliteSnapshotBackend",
    "TIMER_KEY",
    "TimerStore",
]
