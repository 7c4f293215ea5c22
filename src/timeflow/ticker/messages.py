"""Messages exchanged between the timer controller and the ticker thread."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandType(str, Enum):
    """Commands the ticker accepts."""

    START = "START"
    PAUSE = "PAUSE"
    RESUME = "RESUME"
    STOP = "STOP"
    SYNC = "SYNC"
    SHUTDOWN = "SHUTDOWN"


class EventType(str, Enum):
    """Events the ticker emits."""

    TICK = "TICK"
    SYNC_REQUEST = "SYNC_REQUEST"


@dataclass(frozen=True)
class TickerCommand:
    """Command posted to the ticker.

    Attributes:
        type: Command kind
        start_time: Epoch milliseconds for START/RESUME (None means now)
        generation: Run tag copied onto every event emitted under this command
    """

    type: CommandType
    start_time: Optional[int] = None
    generation: int = 0


@dataclass(frozen=True)
class TickerEvent:
    """Event posted by the ticker.

    Attributes:
        type: Event kind
        elapsed: Elapsed milliseconds (TICK only)
        generation: Run tag of the command that armed emission
    """

    type: EventType
    elapsed: int = 0
    generation: int = 0
