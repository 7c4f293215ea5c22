"""Dependency injection for FastAPI endpoints.

The application keeps one configuration, one ledger and one timer
controller in ``app.state``; these functions hand them to endpoints.
"""

from fastapi import Request

from timeflow.core.config import ConfigManager
from timeflow.core.ledger import Ledger
from timeflow.core.timer import TimerController


def get_config(request: Request) -> ConfigManager:
    """Get the application's configuration manager."""
    config: ConfigManager = request.app.state.config
    return config


def get_ledger(request: Request) -> Ledger:
    """Get the application's ledger."""
    ledger: Ledger = request.app.state.ledger
    return ledger


async def get_controller(request: Request) -> TimerController:
    """Get the timer controller with pending ticker events applied.

    Note:
        This is a dependency function for FastAPI endpoints.
        Use with Depends(get_controller) in endpoint parameters.
        It is async so that it runs on the event loop alongside the
        endpoints; the controller is not thread-safe.
    """
    controller: TimerController = request.app.state.controller
    controller.process_events()
    return controller
