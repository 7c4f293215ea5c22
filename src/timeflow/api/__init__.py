"""REST API for TimeFlow.

A FastAPI application exposing the active timer and the client/project
catalog. The API is disabled by default and must be explicitly enabled in
the configuration.

Usage:
    # Enable API
    timeflow config set api.enabled true

    # Generate token
    timeflow api token create --user alice

    # Start server
    timeflow api serve

    # Access API docs
    http://localhost:8000/docs
"""

__all__ = ["create_app", "run_server"]

from timeflow.api.server import create_app, run_server  # noqa: F401
