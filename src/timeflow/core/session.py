"""Wiring of a timer session from configuration."""

from pathlib import Path
from typing import Callable, Optional

from timeflow.core.clock import SystemClock
from timeflow.core.config import ConfigManager
from timeflow.core.ledger import Ledger
from timeflow.core.models import TimerSnapshot
from timeflow.core.timer import TimerController
from timeflow.persistence.store import TimerStore
from timeflow.ticker.ticker import Ticker


def create_controller(
    config: ConfigManager,
    ledger: Optional[Ledger] = None,
    clock: Optional[SystemClock] = None,
    identity: Optional[Callable[[], Optional[str]]] = None,
    on_change: Optional[Callable[[TimerSnapshot], None]] = None,
    on_title: Optional[Callable[[str], None]] = None,
    data_dir: Optional[Path] = None,
) -> TimerController:
    """Build a controller owning its own ticker and store.

    Args:
        config: Configuration manager
        ledger: Ledger receiving committed entries (default: under the data directory)
        clock: Clock shared by ticker, store and controller
        identity: User id provider (default: configured user)
        on_change: State change callback
        on_title: Title change callback
        data_dir: Overrides the configured data directory

    Returns:
        TimerController for one application session
    """
    clock = clock or SystemClock()
    data_dir = data_dir or config.data_dir
    ticker = Ticker(
        interval=float(config.get("timer.tick_interval", 1.0)),
        resync_factor=float(config.get("timer.resync_factor", 1.5)),
        clock=clock,
    )
    return TimerController(
        store=TimerStore.from_config(config, clock=clock, data_dir=data_dir),
        ticker=ticker,
        recorder=ledger or Ledger(data_dir),
        identity=identity or config.get_user_id,
        clock=clock,
        on_change=on_change,
        on_title=on_title,
        default_title=config.get("timer.title", "TimeFlow"),
        default_billable=bool(config.get("timer.default_billable", True)),
    )
