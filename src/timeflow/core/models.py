"""Core data models for the timer engine."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4


class TimerStatus(str, Enum):
    """The single state a timer is in."""

    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class ClientRef:
    """Client a project belongs to.

    Attributes:
        id: Client identifier
        name: Display name
        email: Contact address used for reports
    """

    id: str
    name: str
    email: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClientRef":
        """Create ClientRef from dictionary."""
        return cls(id=str(data["id"]), name=data["name"], email=data.get("email") or "")


@dataclass
class ProjectRef:
    """Project time is tracked against.

    Attributes:
        id: Project identifier
        name: Display name
        client_id: Owning client identifier
    """

    id: str
    name: str
    client_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {"id": self.id, "name": self.name, "client_id": self.client_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProjectRef":
        """Create ProjectRef from dictionary."""
        return cls(id=str(data["id"]), name=data["name"], client_id=str(data["client_id"]))


@dataclass
class TimerSnapshot:
    """Persisted representation of the active timer.

    All times are integer milliseconds; ``start_time`` and ``last_update`` are
    epoch timestamps, ``elapsed_time`` and ``base_time`` are durations.

    Attributes:
        is_running: Timer has been started and not stopped
        is_paused: Timer is running but not accumulating time
        start_time: Wall-clock instant the running interval began (adjusted on resume)
        elapsed_time: Last known elapsed time
        base_time: Elapsed time accumulated before the current running interval
        description: What is being worked on
        selected_client: Client the project belongs to
        selected_project: Project the time is tracked against
        is_billable: Whether the committed entry is billable
        last_update: When the snapshot was written
    """

    is_running: bool = False
    is_paused: bool = False
    start_time: Optional[int] = None
    elapsed_time: int = 0
    base_time: int = 0
    description: str = ""
    selected_client: Optional[ClientRef] = None
    selected_project: Optional[ProjectRef] = None
    is_billable: bool = True
    last_update: int = 0

    @property
    def status(self) -> TimerStatus:
        """Derive the timer state from the running/paused flags."""
        if not self.is_running:
            return TimerStatus.STOPPED
        if self.is_paused:
            return TimerStatus.PAUSED
        return TimerStatus.RUNNING

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted key layout."""
        return {
            "isRunning": self.is_running,
            "isPaused": self.is_paused,
            "startTime": self.start_time,
            "elapsedTime": self.elapsed_time,
            "baseTime": self.base_time,
            "description": self.description,
            "selectedClient": self.selected_client.to_dict() if self.selected_client else None,
            "selectedProject": self.selected_project.to_dict() if self.selected_project else None,
            "isBillable": self.is_billable,
            "lastUpdate": self.last_update,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimerSnapshot":
        """Create TimerSnapshot from the persisted key layout."""
        client = data.get("selectedClient")
        project = data.get("selectedProject")
        start_time = data.get("startTime")
        return cls(
            is_running=bool(data.get("isRunning", False)),
            is_paused=bool(data.get("isPaused", False)),
            start_time=int(start_time) if start_time is not None else None,
            elapsed_time=int(data.get("elapsedTime") or 0),
            base_time=int(data.get("baseTime") or 0),
            description=data.get("description") or "",
            selected_client=ClientRef.from_dict(client) if client else None,
            selected_project=ProjectRef.from_dict(project) if project else None,
            is_billable=bool(data.get("isBillable", True)),
            last_update=int(data.get("lastUpdate") or 0),
        )


@dataclass
class TimeEntry:
    """Committed, immutable record of a tracked interval.

    Attributes:
        project_id: Project the time was tracked against
        start_time: When the interval began
        end_time: When the interval ended
        description: What was worked on
        user_id: User the time is attributed to
        billable: Whether the time is billable
        id: Unique identifier (UUID)
        created_at: When this record was created
    """

    project_id: str
    start_time: datetime
    end_time: datetime
    user_id: str
    description: str = ""
    billable: bool = True
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def duration_seconds(self) -> int:
        """Length of the interval in whole seconds."""
        return int((self.end_time - self.start_time).total_seconds())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for CSV/JSON serialization."""
        return {
            "id": str(self.id),
            "project_id": self.project_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "duration_seconds": self.duration_seconds,
            "description": self.description,
            "user_id": self.user_id,
            "billable": self.billable,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimeEntry":
        """Create TimeEntry from dictionary (CSV/JSON deserialization)."""
        billable = data.get("billable", True)
        if isinstance(billable, str):
            billable = billable.lower() == "true"
        return cls(
            id=UUID(data["id"]),
            project_id=data["project_id"],
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            description=data.get("description") or "",
            user_id=data["user_id"],
            billable=bool(billable),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
