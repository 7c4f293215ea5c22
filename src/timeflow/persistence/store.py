"""Crash-recoverable storage for the active timer snapshot."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

from timeflow.core.clock import SystemClock
from timeflow.core.models import TimerSnapshot
from timeflow.persistence.backends import (
    JsonFileSnapshotBackend,
    SnapshotBackend,
    SqliteSnapshotBackend,
)

logger = logging.getLogger(__name__)

TIMER_KEY = "current"
DB_FILENAME = "timeflow.db"
BACKUP_FILENAME = "timer_backup.json"


class TimerStore:
    """Persists the active timer to a structured and a flat backend.

    Every save goes to both backends. Reads return the newest snapshot
    either backend holds. No method raises: backend failures are logged
    and the store degrades to whatever still works.
    """

    def __init__(
        self,
        flat: SnapshotBackend,
        structured: Optional[SnapshotBackend] = None,
        clock: Optional[SystemClock] = None,
    ):
        """Initialize timer store.

        Args:
            flat: Key-value backend whose write decides success
            structured: Database backend, best-effort (None disables it)
            clock: Clock used to stamp and adjust snapshots
        """
        self.flat = flat
        self.structured = structured
        self.clock = clock or SystemClock()
        self._structured_ready = False
        self._initialized = False
        self._init_lock = threading.Lock()

    @classmethod
    def from_config(
        cls, config: Any, clock: Optional[SystemClock] = None, data_dir: Optional[Path] = None
    ) -> "TimerStore":
        """Build the default backend pair under the data directory.

        Args:
            config: Configuration manager
            clock: Optional clock
            data_dir: Overrides the configured data directory

        Returns:
            TimerStore instance
        """
        if data_dir is None:
            data_dir = Path(config.get("general.data_dir", "~/.timeflow/data")).expanduser()
        structured = None
        if config.get("storage.structured_backend", True):
            structured = SqliteSnapshotBackend(data_dir / DB_FILENAME)
        return cls(JsonFileSnapshotBackend(data_dir / BACKUP_FILENAME), structured, clock)

    def initialize(self) -> None:
        """Open the backends once, no matter how many callers race here."""
        if self._initialized:
            return

        with self._init_lock:
            if self._initialized:
                return

            if self.structured is not None:
                try:
                    self.structured.open()
                    self._structured_ready = True
                except Exception as e:
                    logger.warning(f"Structured timer store unavailable, using fallback only: {e}")

            try:
                self.flat.open()
            except Exception as e:
                logger.error(f"Failed to open fallback timer store: {e}")

            self._initialized = True
            logger.debug("Timer store initialized")

    @property
    def structured_available(self) -> bool:
        """Whether the structured backend opened successfully."""
        self.initialize()
        return self._structured_ready

    def save_timer(self, snapshot: TimerSnapshot) -> bool:
        """Stamp and write the snapshot to both backends concurrently.

        Args:
            snapshot: Snapshot to persist (``last_update`` is set in place)

        Returns:
            True if the fallback write succeeded
        """
        self.initialize()
        snapshot.last_update = self.clock.wall_ms()
        data = snapshot.to_dict()

        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="timeflow-store") as pool:
            flat_future = pool.submit(self.flat.write, TIMER_KEY, data)
            structured_future = None
            if self._structured_ready and self.structured is not None:
                structured_future = pool.submit(self.structured.write, TIMER_KEY, data)

            if structured_future is not None:
                try:
                    structured_future.result()
                except Exception as e:
                    logger.warning(f"Structured timer save failed: {e}")
                    self._drop_stale_structured()

            try:
                flat_future.result()
            except Exception as e:
                logger.error(f"Fallback timer save failed: {e}")
                return False

        return True

    def get_timer(self) -> Optional[TimerSnapshot]:
        """Load the saved snapshot, adjusted for time passed while unloaded.

        Both backends are read. A structured snapshot replaces the fallback
        one only when its ``last_update`` is later, so a copy left behind by a
        failed structured write never shadows a newer save.

        Returns:
            Snapshot or None if nothing usable is stored
        """
        self.initialize()

        backends = [self.flat]
        if self._structured_ready and self.structured is not None:
            backends.append(self.structured)

        latest: Optional[TimerSnapshot] = None
        for backend in backends:
            snapshot = self._read_snapshot(backend)
            if snapshot is None:
                continue
            if latest is None or snapshot.last_update > latest.last_update:
                latest = snapshot

        if latest is None:
            return None
        return self._adjust(latest)

    def _read_snapshot(self, backend: SnapshotBackend) -> Optional[TimerSnapshot]:
        """Read and parse one backend's snapshot; failures count as a miss."""
        try:
            data = backend.read(TIMER_KEY)
        except Exception as e:
            logger.warning(f"Error reading {backend.name} timer store: {e}")
            return None

        if data is None:
            return None

        try:
            return TimerSnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed {backend.name} timer snapshot: {e}")
            return None

    def clear_timer(self) -> None:
        """Delete the snapshot from both backends. Safe to repeat."""
        self.initialize()

        backends = [self.flat]
        if self._structured_ready and self.structured is not None:
            backends.append(self.structured)

        for backend in backends:
            try:
                backend.delete(TIMER_KEY)
            except Exception as e:
                logger.warning(f"Failed to clear {backend.name} timer store: {e}")

    def _drop_stale_structured(self) -> None:
        """Remove an older structured copy so reads fall through to the fallback."""
        if self.structured is None:
            return
        try:
            self.structured.delete(TIMER_KEY)
        except Exception as e:
            logger.debug(f"Could not drop stale structured snapshot: {e}")

    def _adjust(self, snapshot: TimerSnapshot) -> TimerSnapshot:
        """Move a running snapshot's start back so restored time is never understated."""
        if snapshot.is_running and not snapshot.is_paused and snapshot.start_time is not None:
            now = self.clock.wall_ms()
            elapsed = max(snapshot.base_time, now - snapshot.start_time)
            snapshot.start_time = now - elapsed
            snapshot.elapsed_time = max(snapshot.elapsed_time, elapsed)
        return snapshot
