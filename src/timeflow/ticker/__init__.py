"""
Background ticker for the timer engine.

The ticker runs on its own thread and communicates only by message queues:
commands in (start, pause, resume, stop, sync), events out (tick, sync request).
"""

from timeflow.ticker.messages import CommandType, EventType, TickerCommand, TickerEvent
from timeflow.ticker.ticker import Ticker

__all__ = ["Ticker", "TickerCommand", "TickerEvent", "CommandType", "EventType"]
