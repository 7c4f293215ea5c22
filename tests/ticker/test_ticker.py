"""Tests for the background ticker."""

import queue
import time

import pytest  # type: ignore[import-not-found]

from timeflow.ticker import EventType, Ticker, TickerEvent
from timeflow.ticker.ticker import TickerState

INTERVAL = 0.05


@pytest.fixture
def ticker(clock):
    """Create a fast ticker on a fake clock."""
    t = Ticker(interval=INTERVAL, resync_factor=1.5, clock=clock)
    yield t
    t.shutdown()


def next_event(ticker: Ticker, event_type: EventType = EventType.TICK, timeout: float = 2.0):
    """Wait for the next event of a type, skipping others."""
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise AssertionError(f"No {event_type.value} event within {timeout}s")
        event = ticker.events.get(timeout=remaining)
        if event.type == event_type:
            return event


def drain(ticker: Ticker) -> list[TickerEvent]:
    events = []
    while True:
        try:
            events.append(ticker.events.get_nowait())
        except queue.Empty:
            return events


class TestTickerLifecycle:
    """Test ticker state transitions."""

    def test_start_emits_immediate_tick(self, ticker: Ticker, clock) -> None:
        """Test that a start with a past anchor reports its elapsed time at once."""
        ticker.start(clock.wall - 4000, generation=1)

        event = next_event(ticker)

        assert event.elapsed == 4000
        assert event.generation == 1

    def test_periodic_ticks_follow_wall_clock(self, ticker: Ticker, clock) -> None:
        """Test that periodic ticks pick up wall-clock progress."""
        ticker.start(clock.wall, generation=1)
        assert next_event(ticker).elapsed == 0

        clock.advance(1500)

        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline:
            if next_event(ticker).elapsed == 1500:
                break
        else:
            pytest.fail("Ticker never reported the advanced clock")

    def test_start_ignored_while_running(self, ticker: Ticker, clock) -> None:
        """Test that a second start does not re-anchor a running ticker."""
        ticker.start(clock.wall - 1000, generation=1)
        ticker.start(clock.wall, generation=2)
        ticker.commands.join()
        ticker.sync()
        ticker.commands.join()

        events = [e for e in drain(ticker) if e.type == EventType.TICK]

        assert events
        assert all(e.generation == 1 for e in events)
        assert all(e.elapsed == 1000 for e in events)

    def test_pause_and_sync_ignored_when_idle(self, ticker: Ticker) -> None:
        """Test that pause and sync on an idle ticker emit nothing."""
        ticker.pause(generation=1)
        ticker.sync()
        ticker.commands.join()
        time.sleep(INTERVAL * 3)

        assert drain(ticker) == []

    def test_no_ticks_after_stop(self, ticker: Ticker, clock) -> None:
        """Test that stop cancels periodic emission."""
        ticker.start(clock.wall, generation=1)
        next_event(ticker)

        ticker.stop(generation=2)
        ticker.commands.join()
        drain(ticker)
        time.sleep(INTERVAL * 4)

        assert drain(ticker) == []

    def test_shutdown_stops_thread(self, clock) -> None:
        """Test that shutdown joins the ticker thread."""
        ticker = Ticker(interval=INTERVAL, clock=clock)
        ticker.start(clock.wall)
        assert ticker.is_alive

        ticker.shutdown()

        assert not ticker.is_alive

    def test_tick_without_anchor_emits_nothing(self, ticker: Ticker) -> None:
        """Test that a tick on a state with no start time is a no-op."""
        state = TickerState(running=True)

        ticker._tick(state)

        assert drain(ticker) == []
        assert state.last_tick is None


class TestPauseResume:
    """Test frozen elapsed time across pause and resume."""

    def test_paused_time_is_not_counted(self, ticker: Ticker, clock) -> None:
        """Test pause at 5s, wait 10s, resume: elapsed continues from 5s."""
        ticker.start(clock.wall, generation=1)
        next_event(ticker)

        clock.advance(5000)
        ticker.pause(generation=2)
        ticker.commands.join()
        drain(ticker)
        time.sleep(INTERVAL * 3)
        assert drain(ticker) == []

        clock.advance(10000)
        ticker.resume(generation=3)

        event = next_event(ticker)
        assert event.generation == 3
        assert event.elapsed == 5000

        clock.advance(2000)
        ticker.sync()
        ticker.commands.join()
        later = [e for e in drain(ticker) if e.type == EventType.TICK]
        assert later[-1].elapsed == 7000

    def test_resume_on_fresh_ticker_adopts_anchor(self, ticker: Ticker, clock) -> None:
        """Test that a new ticker resuming a restored run uses the given start."""
        ticker.resume(clock.wall - 9000, generation=4)

        event = next_event(ticker)

        assert event.generation == 4
        assert event.elapsed == 9000


class TestClockAnomalies:
    """Test behavior when the clocks misbehave."""

    def test_elapsed_never_decreases_when_wall_clock_rewinds(
        self, ticker: Ticker, clock
    ) -> None:
        """Test the monotonic guard across a backwards wall-clock jump."""
        ticker.start(clock.wall - 10000, generation=1)
        assert next_event(ticker).elapsed == 10000

        clock.wall -= 5000
        ticker.sync()
        ticker.commands.join()
        time.sleep(INTERVAL * 3)

        clock.wall += 8000
        ticker.sync()
        ticker.commands.join()

        ticks = [e.elapsed for e in drain(ticker) if e.type == EventType.TICK]
        assert ticks
        assert ticks == sorted(ticks)
        assert min(ticks) >= 10000
        assert ticks[-1] == 13000

    def test_missed_ticks_request_sync(self, ticker: Ticker, clock) -> None:
        """Test that a monotonic gap beyond the threshold emits a sync request."""
        ticker.start(clock.wall, generation=1)
        next_event(ticker)

        # Host slept for ten seconds
        clock.advance(10000)

        event = next_event(ticker, EventType.SYNC_REQUEST)
        assert event.generation == 1

        tick = next_event(ticker)
        assert tick.elapsed == 10000

    def test_regular_ticks_do_not_request_sync(self, ticker: Ticker, clock) -> None:
        """Test that ticks on schedule never ask for a sync."""
        ticker.start(clock.wall, generation=1)
        time.sleep(INTERVAL * 5)

        events = drain(ticker)

        assert events
        assert all(e.type == EventType.TICK for e in events)
