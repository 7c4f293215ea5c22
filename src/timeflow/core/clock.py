"""Clock sources for the timer engine."""

import time


class SystemClock:
    """Wall-clock and monotonic time in integer milliseconds.

    Wall-clock time anchors persisted timestamps and may jump (NTP, manual
    adjustment). Monotonic time only measures gaps between ticks.
    """

    def wall_ms(self) -> int:
        """Milliseconds since the Unix epoch."""
        return int(time.time() * 1000)

    def monotonic_ms(self) -> float:
        """Milliseconds on a clock that never goes backward."""
        return time.monotonic() * 1000
