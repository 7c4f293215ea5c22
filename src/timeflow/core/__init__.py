"""Core functionality: data models and the local ledger.

The timer controller lives in ``timeflow.core.timer``; it is not imported
here because it depends on ``timeflow.persistence``, which itself builds on
this package.
"""

from timeflow.core.ledger import Ledger, LedgerError
from timeflow.core.models import ClientRef, ProjectRef, TimeEntry, TimerSnapshot, TimerStatus

__all__ = [
    "ClientRef",
    "Ledger",
    "LedgerError",
    "ProjectRef",
    "TimeEntry",
    "TimerSnapshot",
    "TimerStatus",
]
