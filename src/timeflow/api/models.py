"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from timeflow.core.models import ClientRef, ProjectRef, TimeEntry, TimerSnapshot
from timeflow.core.timer import format_elapsed

# ============================================================================
# Response Models
# ============================================================================


class ClientResponse(BaseModel):
    """Response model for a client."""

    id: str
    name: str
    email: str = ""

    @classmethod
    def from_client(cls, client: ClientRef) -> "ClientResponse":
        return cls(id=client.id, name=client.name, email=client.email)


class ProjectResponse(BaseModel):
    """Response model for a project."""

    id: str
    name: str
    client_id: str

    @classmethod
    def from_project(cls, project: ProjectRef) -> "ProjectResponse":
        return cls(id=project.id, name=project.name, client_id=project.client_id)


class TimerResponse(BaseModel):
    """Response model for the active timer."""

    status: str
    is_running: bool
    is_paused: bool
    start_time: Optional[int] = Field(None, description="Epoch milliseconds")
    elapsed_ms: int = 0
    elapsed: str = "00:00:00"
    description: str = ""
    client: Optional[ClientResponse] = None
    project: Optional[ProjectResponse] = None
    billable: bool = True
    title: str = ""

    @classmethod
    def from_snapshot(cls, snapshot: TimerSnapshot, elapsed_ms: int, title: str) -> "TimerResponse":
        """Create response from a timer snapshot.

        Args:
            snapshot: Controller state
            elapsed_ms: Elapsed time brought up to date with the wall clock
            title: Current display title

        Returns:
            TimerResponse instance
        """
        return cls(
            status=snapshot.status.value,
            is_running=snapshot.is_running,
            is_paused=snapshot.is_paused,
            start_time=snapshot.start_time,
            elapsed_ms=elapsed_ms,
            elapsed=format_elapsed(elapsed_ms),
            description=snapshot.description,
            client=(
                ClientResponse.from_client(snapshot.selected_client)
                if snapshot.selected_client
                else None
            ),
            project=(
                ProjectResponse.from_project(snapshot.selected_project)
                if snapshot.selected_project
                else None
            ),
            billable=snapshot.is_billable,
            title=title,
        )


class TimeEntryResponse(BaseModel):
    """Response model for a committed time entry."""

    id: str
    project_id: str
    start_time: datetime
    end_time: datetime
    duration_seconds: int
    description: str = ""
    user_id: str
    billable: bool = True

    @classmethod
    def from_entry(cls, entry: TimeEntry) -> "TimeEntryResponse":
        return cls(
            id=str(entry.id),
            project_id=entry.project_id,
            start_time=entry.start_time,
            end_time=entry.end_time,
            duration_seconds=entry.duration_seconds,
            description=entry.description,
            user_id=entry.user_id,
            billable=entry.billable,
        )


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = "healthy"
    timestamp: datetime
    version: str


class StatusResponse(BaseModel):
    """Response model for server status."""

    api_enabled: bool
    authentication_enabled: bool
    cors_enabled: bool
    timer_status: str
    structured_store: bool
    uptime_seconds: float


class TokenResponse(BaseModel):
    """Response model for authentication token."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str


# ============================================================================
# Request Models
# ============================================================================


class StartTimerRequest(BaseModel):
    """Request model for starting the timer."""

    client_id: str = Field(..., min_length=1, description="Client ID or name")
    project_id: str = Field(..., min_length=1, description="Project ID or name")
    description: str = Field("", max_length=1000)
    billable: Optional[bool] = Field(None, description="Default: timer.default_billable")


class StopTimerRequest(BaseModel):
    """Request model for stopping the timer."""

    description: Optional[str] = Field(None, max_length=1000)


class UpdateDescriptionRequest(BaseModel):
    """Request model for changing the running timer's description."""

    description: str = Field(..., max_length=1000)


class CreateClientRequest(BaseModel):
    """Request model for creating a client."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field("", max_length=200)


class CreateProjectRequest(BaseModel):
    """Request model for creating a project."""

    name: str = Field(..., min_length=1, max_length=200)
    client_id: str = Field(..., min_length=1, description="Client ID or name")
