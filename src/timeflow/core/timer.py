"""Timer state machine.

The controller is the single source of truth for the active timer. It
commands the background ticker, checkpoints state to the timer store on
every transition and turns a finished run into a committed time entry.
"""

import logging
import queue
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Protocol

from timeflow.core.clock import SystemClock
from timeflow.core.models import ClientRef, ProjectRef, TimeEntry, TimerSnapshot, TimerStatus
from timeflow.persistence.store import TimerStore
from timeflow.ticker.messages import EventType, TickerEvent
from timeflow.ticker.ticker import Ticker

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "TimeFlow"


class TimerError(Exception):
    """Base class for errors reported to the user."""

    pass


class ValidationError(TimerError):
    """Operation rejected before any state changed."""

    pass


class CommitError(TimerError):
    """The time entry could not be recorded; the timer keeps running."""

    pass


class EntryRecorder(Protocol):
    """Data store that records committed time entries."""

    def insert_time_entry(self, entry: TimeEntry) -> TimeEntry:
        """Persist the entry or raise."""
        ...


def format_elapsed(ms: int) -> str:
    """Format milliseconds as HH:MM:SS."""
    total_seconds = max(0, ms) // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class TimerController:
    """Start/pause/resume/stop controller for the active timer."""

    def __init__(
        self,
        store: TimerStore,
        ticker: Ticker,
        recorder: EntryRecorder,
        identity: Optional[Callable[[], Optional[str]]] = None,
        clock: Optional[SystemClock] = None,
        on_change: Optional[Callable[[TimerSnapshot], None]] = None,
        on_title: Optional[Callable[[str], None]] = None,
        default_title: str = DEFAULT_TITLE,
        default_billable: bool = True,
    ):
        """Initialize timer controller.

        Args:
            store: Snapshot store used for crash recovery
            ticker: Background ticker producing elapsed-time events
            recorder: Data store receiving committed time entries
            identity: Returns the current user id (None when signed out)
            clock: Clock for timestamps (default: system clock)
            on_change: Called with a snapshot after every state change or tick
            on_title: Called with the new display title
            default_title: Title shown while no timer runs
            default_billable: Billable flag of a fresh timer
        """
        self.store = store
        self.ticker = ticker
        self.recorder = recorder
        self.identity = identity
        self.clock = clock or SystemClock()
        self.on_change = on_change
        self.on_title = on_title
        self.default_title = default_title
        self.default_billable = default_billable

        self._state = TimerSnapshot(is_billable=default_billable)
        self._generation = 0
        self.title = default_title

    # State accessors

    @property
    def status(self) -> TimerStatus:
        """Current timer state."""
        return self._state.status

    @property
    def is_running(self) -> bool:
        return self._state.is_running

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    @property
    def elapsed_time(self) -> int:
        """Displayed elapsed milliseconds (updated by ticks)."""
        return self._state.elapsed_time

    @property
    def start_time(self) -> Optional[int]:
        return self._state.start_time

    @property
    def selected_client(self) -> Optional[ClientRef]:
        return self._state.selected_client

    @property
    def selected_project(self) -> Optional[ProjectRef]:
        return self._state.selected_project

    @property
    def description(self) -> str:
        return self._state.description

    @property
    def is_billable(self) -> bool:
        return self._state.is_billable

    def snapshot(self) -> TimerSnapshot:
        """Copy of the current state."""
        return replace(self._state)

    def current_elapsed(self) -> int:
        """Elapsed milliseconds brought up to date with the wall clock."""
        state = self._state
        if state.is_running and not state.is_paused and state.start_time is not None:
            return max(state.elapsed_time, self.clock.wall_ms() - state.start_time)
        return state.elapsed_time

    # Selection

    def select_client(self, client: Optional[ClientRef]) -> None:
        """Select the client; a different client clears the project.

        Raises:
            ValidationError: If the timer is running
        """
        if self._state.is_running:
            raise ValidationError("Cannot change client while the timer is running")

        current = self._state.selected_client
        if client is None or current is None or current.id != client.id:
            self._state.selected_project = None
        self._state.selected_client = client
        self._notify()

    def select_project(self, project: Optional[ProjectRef]) -> None:
        """Select a project of the selected client.

        Raises:
            ValidationError: If the timer is running or the project belongs to another client
        """
        if self._state.is_running:
            raise ValidationError("Cannot change project while the timer is running")

        if project is not None:
            client = self._state.selected_client
            if client is None:
                raise ValidationError("Please select a client first")
            if project.client_id != client.id:
                raise ValidationError(f"Project '{project.name}' does not belong to {client.name}")

        self._state.selected_project = project
        self._notify()

    def set_description(self, description: str) -> None:
        """Update the description; checkpointed if the timer is running."""
        self._state.description = description
        if self._state.is_running:
            self._persist()
        self._notify()

    def set_billable(self, billable: bool) -> None:
        """Set the billable flag.

        Raises:
            ValidationError: If the timer is running
        """
        if self._state.is_running:
            raise ValidationError("Cannot change billable flag while the timer is running")
        self._state.is_billable = billable
        self._notify()

    # Transitions

    def restore(self) -> Optional[TimerSnapshot]:
        """Adopt a previously persisted timer, if one was running.

        Returns:
            The restored snapshot or None
        """
        snapshot = self.store.get_timer()
        if snapshot is None or not snapshot.is_running:
            return None

        self._state = replace(snapshot)
        if not snapshot.is_paused and snapshot.start_time is not None:
            self._generation += 1
            self.ticker.start(snapshot.start_time, generation=self._generation)
        elif snapshot.is_paused:
            self._state.elapsed_time = max(snapshot.elapsed_time, snapshot.base_time)

        logger.info(
            f"Restored {snapshot.status.value} timer ({format_elapsed(self._state.elapsed_time)})"
        )
        self._set_title(self._state.elapsed_time)
        self._notify()
        return snapshot

    def start(self) -> None:
        """Start a new run for the selected project.

        Raises:
            ValidationError: If no project is selected or a timer is already running
        """
        if self._state.is_running:
            raise ValidationError("Timer is already running")
        if self._state.selected_project is None:
            raise ValidationError("Please select a project")

        now = self.clock.wall_ms()
        self._state.is_running = True
        self._state.is_paused = False
        self._state.start_time = now
        self._state.elapsed_time = 0
        self._state.base_time = 0

        self._generation += 1
        self.ticker.start(now, generation=self._generation)
        self._persist()
        logger.info(f"Timer started for project {self._state.selected_project.name}")
        self._notify()

    def pause(self) -> None:
        """Freeze the elapsed time.

        Raises:
            ValidationError: If the timer is not running or already paused
        """
        if not self._state.is_running or self._state.is_paused:
            raise ValidationError("Timer is not running")

        elapsed = self.current_elapsed()
        self._state.is_paused = True
        self._state.elapsed_time = elapsed
        self._state.base_time = elapsed

        self._generation += 1
        self.ticker.pause(generation=self._generation)
        self._persist()
        logger.info(f"Timer paused at {format_elapsed(elapsed)}")
        self._notify()

    def resume(self) -> None:
        """Continue a paused run from its frozen elapsed time.

        Raises:
            ValidationError: If the timer is not paused
        """
        if not self._state.is_running or not self._state.is_paused:
            raise ValidationError("Timer is not paused")

        now = self.clock.wall_ms()
        self._state.start_time = now - self._state.elapsed_time
        self._state.is_paused = False

        self._generation += 1
        self.ticker.resume(self._state.start_time, generation=self._generation)
        self._persist()
        logger.info("Timer resumed")
        self._notify()

    def toggle_pause(self) -> TimerStatus:
        """Pause a running timer or resume a paused one.

        Returns:
            The new status
        """
        if self._state.is_paused:
            self.resume()
        else:
            self.pause()
        return self.status

    def stop(self, user_id: Optional[str] = None) -> TimeEntry:
        """Commit the run as a time entry and reset to stopped.

        Args:
            user_id: User the entry is attributed to (default: identity provider)

        Returns:
            The recorded time entry

        Raises:
            ValidationError: If there is no run, no project or no user
            CommitError: If the data store rejected the entry; the timer is left untouched
        """
        state = self._state
        if not state.is_running or state.start_time is None:
            raise ValidationError("Timer is not running")
        if state.selected_project is None:
            raise ValidationError("Please select a project")

        if user_id is None and self.identity is not None:
            user_id = self.identity()
        if not user_id:
            raise ValidationError("You must be logged in to track time")

        # The entry ends now and spans exactly the tracked time, paused spans
        # and wall-clock steps excluded
        end_ms = self.clock.wall_ms()
        start_ms = end_ms - self.current_elapsed()

        entry = TimeEntry(
            project_id=state.selected_project.id,
            start_time=datetime.fromtimestamp(start_ms / 1000),
            end_time=datetime.fromtimestamp(end_ms / 1000),
            description=state.description,
            user_id=user_id,
            billable=state.is_billable,
        )

        try:
            recorded = self.recorder.insert_time_entry(entry)
        except Exception as e:
            logger.error(f"Time entry commit failed: {e}")
            raise CommitError(f"Error saving time entry: {e}") from e

        self._reset()
        logger.info(f"Timer stopped, recorded {recorded.duration_seconds}s")
        return recorded

    def discard(self) -> bool:
        """Throw away the active run without committing it.

        Returns:
            True if a run was discarded
        """
        if not self._state.is_running:
            return False
        self._reset()
        logger.info("Timer discarded")
        return True

    def _reset(self) -> None:
        previous = self._state
        self._state = TimerSnapshot(
            selected_client=previous.selected_client,
            selected_project=previous.selected_project,
            is_billable=previous.is_billable,
        )
        self._generation += 1
        self.ticker.stop(generation=self._generation)
        self.store.clear_timer()
        self._set_title(None)
        self._notify()

    # Ticker events

    def process_events(self, timeout: float = 0.0) -> int:
        """Apply pending ticker events.

        Args:
            timeout: Seconds to wait for the first event

        Returns:
            Number of events taken off the queue
        """
        processed = 0
        wait = timeout
        while True:
            try:
                if wait > 0:
                    event = self.ticker.events.get(timeout=wait)
                else:
                    event = self.ticker.events.get_nowait()
            except queue.Empty:
                break
            wait = 0.0
            processed += 1
            self._handle_event(event)
        return processed

    def _handle_event(self, event: TickerEvent) -> None:
        if event.generation != self._generation:
            logger.debug(f"Dropping stale {event.type.value} event")
            return

        if event.type == EventType.SYNC_REQUEST:
            logger.info("Missed ticker ticks, resynchronizing")
            self.ticker.sync()
            return

        if not self._state.is_running or self._state.is_paused:
            return
        if event.elapsed > self._state.elapsed_time:
            self._state.elapsed_time = event.elapsed
        self._set_title(self._state.elapsed_time)
        self._notify()

    def visibility_regained(self) -> None:
        """Reconcile drift after the display was hidden or the host slept."""
        if not self._state.is_running or self._state.is_paused:
            return

        if self.ticker.is_alive:
            self.ticker.sync()
            return

        # Ticker thread is gone: re-anchor on whichever start is earliest
        logger.warning("Ticker not running, recovering from persisted timer")
        start = self._state.start_time
        saved = self.store.get_timer()
        if saved is not None and saved.is_running and not saved.is_paused and saved.start_time:
            start = saved.start_time if start is None else min(start, saved.start_time)
        if start is None:
            start = self.clock.wall_ms() - self._state.elapsed_time

        self._state.start_time = start
        self._generation += 1
        self.ticker.start(start, generation=self._generation)

    def close(self) -> None:
        """Shut the ticker down; the persisted timer survives for the next session."""
        self.ticker.shutdown()

    # Side effects

    def _persist(self) -> None:
        if not self.store.save_timer(self.snapshot()):
            logger.warning("Timer state could not be persisted")

    def _set_title(self, elapsed: Optional[int]) -> None:
        if elapsed is None:
            title = self.default_title
        else:
            project = self._state.selected_project
            title = f"{format_elapsed(elapsed)} - {project.name if project else 'Timer'}"
        if title != self.title:
            self.title = title
            if self.on_title:
                self.on_title(title)

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self.snapshot())
