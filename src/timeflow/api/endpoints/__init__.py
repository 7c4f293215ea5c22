"""API endpoint routers.

Available routers:
- system: Health checks and server status
- timer: Active timer state and transitions
- catalog: Clients, projects and committed time entries
"""

__all__ = ["catalog", "system", "timer"]

from timeflow.api.endpoints import catalog, system, timer  # noqa: F401
