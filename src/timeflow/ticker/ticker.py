"""Background ticker thread.

The ticker owns its counters outright. Callers only post commands to its
command queue and read events from its event queue; nothing outside the
ticker thread touches the counters.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional

from timeflow.core.clock import SystemClock
from timeflow.ticker.messages import CommandType, EventType, TickerCommand, TickerEvent

logger = logging.getLogger(__name__)


@dataclass
class TickerState:
    """Counters owned by the ticker thread (milliseconds)."""

    start_time: Optional[int] = None
    base_time: int = 0
    last_known_elapsed: int = 0
    running: bool = False
    last_tick: Optional[float] = None
    generation: int = 0

    def reset(self) -> None:
        """Return to the idle state."""
        self.start_time = None
        self.base_time = 0
        self.last_known_elapsed = 0
        self.running = False
        self.last_tick = None


class Ticker:
    """Emits elapsed-time ticks from a dedicated thread.

    Idle -> Running -> (Paused <-> Running) -> Idle. Commands that do not
    apply to the current state are ignored.
    """

    def __init__(
        self,
        interval: float = 1.0,
        resync_factor: float = 1.5,
        clock: Optional[SystemClock] = None,
    ):
        """Initialize ticker.

        Args:
            interval: Nominal seconds between ticks
            resync_factor: Gap, in multiples of the interval, that signals a missed tick
            clock: Clock used to measure elapsed time (default: system clock)
        """
        self.interval = interval
        self.resync_factor = resync_factor
        self.clock = clock or SystemClock()
        self.commands: "queue.Queue[TickerCommand]" = queue.Queue()
        self.events: "queue.Queue[TickerEvent]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._launch_lock = threading.Lock()

    @property
    def is_alive(self) -> bool:
        """Whether the ticker thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def launch(self) -> None:
        """Start the ticker thread if it is not already running."""
        with self._launch_lock:
            if self.is_alive:
                return
            self._thread = threading.Thread(target=self._run, name="timeflow-ticker", daemon=True)
            self._thread.start()
            logger.debug("Ticker thread started")

    def start(self, start_time: Optional[int] = None, generation: int = 0) -> None:
        """Begin emitting ticks for a run that began at ``start_time``."""
        self._post(TickerCommand(CommandType.START, start_time, generation))

    def pause(self, generation: int = 0) -> None:
        """Stop emitting and freeze the elapsed time."""
        self._post(TickerCommand(CommandType.PAUSE, generation=generation))

    def resume(self, start_time: Optional[int] = None, generation: int = 0) -> None:
        """Continue emitting from the frozen elapsed time."""
        self._post(TickerCommand(CommandType.RESUME, start_time, generation))

    def stop(self, generation: int = 0) -> None:
        """Reset all counters and stop emitting."""
        self._post(TickerCommand(CommandType.STOP, generation=generation))

    def sync(self) -> None:
        """Recompute elapsed time from the wall clock and tick immediately."""
        self._post(TickerCommand(CommandType.SYNC))

    def shutdown(self, timeout: Optional[float] = 2.0) -> None:
        """Terminate the ticker thread."""
        if not self.is_alive:
            return
        self.commands.put(TickerCommand(CommandType.SHUTDOWN))
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        logger.debug("Ticker thread stopped")

    def _post(self, command: TickerCommand) -> None:
        self.launch()
        self.commands.put(command)

    def _run(self) -> None:
        """Thread main loop: wait for a command or the next tick deadline."""
        state = TickerState()
        next_due: Optional[float] = None

        while True:
            timeout = None if next_due is None else max(0.0, next_due - time.monotonic())
            try:
                command = self.commands.get(timeout=timeout)
            except queue.Empty:
                try:
                    self._periodic_tick(state)
                except Exception as e:
                    logger.error(f"Error emitting tick: {e}")
                if state.running and next_due is not None:
                    next_due += self.interval
                    # After a suspend, skip the backlog instead of bursting
                    if next_due < time.monotonic():
                        next_due = time.monotonic() + self.interval
                else:
                    next_due = None
                continue

            if command.type == CommandType.SHUTDOWN:
                self.commands.task_done()
                break

            was_running = state.running
            try:
                self._handle(state, command)
            except Exception as e:
                logger.error(f"Error handling ticker command {command.type.value}: {e}")
            finally:
                # Lets callers wait on commands.join() for a command to take effect
                self.commands.task_done()

            if not state.running:
                next_due = None
            elif not was_running:
                next_due = time.monotonic() + self.interval

    def _handle(self, state: TickerState, command: TickerCommand) -> None:
        now = self.clock.wall_ms()

        if command.type == CommandType.START:
            if state.running or state.start_time is not None:
                logger.debug("Ignoring START: ticker not idle")
                return
            state.start_time = command.start_time if command.start_time is not None else now
            state.base_time = now - state.start_time
            state.last_known_elapsed = 0
            state.generation = command.generation
            state.running = True
            self._tick(state)

        elif command.type == CommandType.PAUSE:
            if not state.running or state.start_time is None:
                logger.debug("Ignoring PAUSE: ticker not running")
                return
            state.running = False
            state.last_known_elapsed = max(state.last_known_elapsed, now - state.start_time)
            state.base_time = state.last_known_elapsed
            state.last_tick = None

        elif command.type == CommandType.RESUME:
            if state.running:
                logger.debug("Ignoring RESUME: ticker already running")
                return
            if state.start_time is None and command.start_time is not None:
                # Fresh ticker resuming a restored run: adopt the caller's anchor
                state.start_time = command.start_time
                state.base_time = now - command.start_time
            else:
                state.start_time = now - state.base_time
            state.generation = command.generation
            state.running = True
            self._tick(state)

        elif command.type == CommandType.STOP:
            state.reset()
            state.generation = command.generation

        elif command.type == CommandType.SYNC:
            if not state.running or state.start_time is None:
                return
            self._tick(state)

    def _periodic_tick(self, state: TickerState) -> None:
        if not state.running or state.start_time is None:
            return
        gap = None if state.last_tick is None else self.clock.monotonic_ms() - state.last_tick
        if gap is not None and gap > self.resync_factor * self.interval * 1000:
            logger.debug(f"Missed tick detected ({gap:.0f}ms gap), requesting sync")
            self.events.put(TickerEvent(EventType.SYNC_REQUEST, generation=state.generation))
        self._tick(state)

    def _tick(self, state: TickerState) -> None:
        if state.start_time is None:
            return
        elapsed = self.clock.wall_ms() - state.start_time
        if elapsed > state.last_known_elapsed:
            state.last_known_elapsed = elapsed
        self.events.put(
            TickerEvent(EventType.TICK, state.last_known_elapsed, generation=state.generation)
        )
        state.last_tick = self.clock.monotonic_ms()
