"""Middleware for the FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from timeflow.core.config import ConfigManager


def setup_cors(app: FastAPI, config: ConfigManager) -> None:
    """Configure CORS middleware.

    Args:
        app: FastAPI application instance
        config: Configuration manager

    Note:
        CORS is configured from the api.cors section in config.
        By default, only localhost origins are allowed.
    """
    if not config.get("api.cors.enabled", True):
        return

    origins = config.get("api.cors.origins", ["http://localhost:3000"])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_middleware(app: FastAPI, config: ConfigManager) -> None:
    """Set up all middleware for the application."""
    setup_cors(app, config)
