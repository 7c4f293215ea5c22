"""FastAPI application server.

One application owns one timer controller: the ticker runs for the lifetime
of the server process and the timer store carries the timer across restarts.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from timeflow import __version__
from timeflow.api.middleware import setup_middleware
from timeflow.core.config import ConfigManager
from timeflow.core.ledger import Ledger
from timeflow.core.session import create_controller
from timeflow.core.timer import TimerController

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[ConfigManager] = None,
    controller: Optional[TimerController] = None,
    ledger: Optional[Ledger] = None,
) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        config: Optional configuration manager (creates default if None)
        controller: Timer controller to serve (built from config if None)
        ledger: Ledger for the catalog endpoints (built from config if None)

    Returns:
        Configured FastAPI application instance

    Example:
        >>> app = create_app()
        >>> # Or with custom config
        >>> app = create_app(ConfigManager(Path("config.yml")))
    """
    if config is None:
        config = ConfigManager()

    if ledger is None:
        ledger = Ledger(config.data_dir)
    if controller is None:
        controller = create_controller(config, ledger=ledger)
        controller.restore()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("Shutting down timer controller")
        app.state.controller.close()

    app = FastAPI(
        title="TimeFlow API",
        description="REST API for the TimeFlow client time tracker",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Shared by the dependency functions
    app.state.config = config
    app.state.ledger = ledger
    app.state.controller = controller

    setup_middleware(app, config)

    from timeflow.api.endpoints import catalog, system, timer

    app.include_router(system.router, prefix="/api/v1", tags=["system"])
    app.include_router(timer.router, prefix="/api/v1/timer", tags=["timer"])
    app.include_router(catalog.router, prefix="/api/v1", tags=["catalog"])

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Root endpoint - points at the docs."""
        return JSONResponse(
            {
                "message": "TimeFlow API",
                "version": __version__,
                "docs": "/docs",
                "health": "/api/v1/health",
            }
        )

    return app


def run_server(
    host: str = "localhost",
    port: int = 8000,
    reload: bool = False,
    ssl_certfile: Optional[Path] = None,
    ssl_keyfile: Optional[Path] = None,
    config: Optional[ConfigManager] = None,
) -> None:
    """Run the API server using Uvicorn.

    Args:
        host: Host address to bind to
        port: Port number to bind to
        reload: Enable auto-reload for development
        ssl_certfile: Path to SSL certificate file
        ssl_keyfile: Path to SSL key file
        config: Optional configuration manager

    Note:
        This function blocks until the server is stopped. A single worker
        is used because the active timer lives in the server process.
    """
    import uvicorn

    if config is None:
        config = ConfigManager()

    uvicorn_config = {
        "host": host,
        "port": port,
        "log_level": config.get("api.advanced.log_level", "info"),
        "access_log": config.get("api.advanced.access_log", True),
    }

    if ssl_certfile and ssl_keyfile:
        uvicorn_config.update(
            {
                "ssl_certfile": str(ssl_certfile),
                "ssl_keyfile": str(ssl_keyfile),
            }
        )

    if reload:
        # Reload needs an import string; the factory reads the default config
        uvicorn.run("timeflow.api.server:create_app", factory=True, reload=True, **uvicorn_config)
    else:
        uvicorn.run(create_app(config), **uvicorn_config)
