"""CSV ledger of clients, projects and committed time entries."""

import csv
import logging
import os
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from timeflow.core.locking import lock_file, unlock_file
from timeflow.core.models import ClientRef, ProjectRef, TimeEntry

logger = logging.getLogger(__name__)

CLIENT_FIELDS = ["id", "name", "email"]
PROJECT_FIELDS = ["id", "name", "client_id"]
ENTRY_FIELDS = [
    "id",
    "project_id",
    "start_time",
    "end_time",
    "duration_seconds",
    "description",
    "user_id",
    "billable",
    "created_at",
]


class LedgerError(Exception):
    """Ledger rejected a write."""

    pass


class Ledger:
    """Manages CSV storage for clients, projects and time entries with atomic writes."""

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize ledger.

        Args:
            data_dir: Custom data directory. Defaults to ~/.timeflow/data
        """
        if data_dir is None:
            data_dir = Path.home() / ".timeflow" / "data"

        self.data_dir = data_dir
        self.clients_file = self.data_dir / "clients.csv"
        self.projects_file = self.data_dir / "projects.csv"
        self.entries_file = self.data_dir / "time_entries.csv"

        self.data_dir.mkdir(parents=True, exist_ok=True)
        self._initialize_files()

    def _initialize_files(self) -> None:
        """Create CSV files with headers if they don't exist."""
        for file_path, fieldnames in (
            (self.clients_file, CLIENT_FIELDS),
            (self.projects_file, PROJECT_FIELDS),
            (self.entries_file, ENTRY_FIELDS),
        ):
            if not file_path.exists():
                self._write_csv_atomic(file_path, fieldnames, [])

    def _write_csv_atomic(
        self, file_path: Path, fieldnames: list[str], rows: list[dict[str, Any]]
    ) -> None:
        """Write CSV file atomically using temporary file and rename.

        Args:
            file_path: Target file path
            fieldnames: CSV field names
            rows: List of row dictionaries
        """
        temp_file = file_path.with_suffix(".tmp")

        try:
            with open(temp_file, "w", newline="", encoding="utf-8") as f:
                lock_file(f, exclusive=True)

                writer = csv.DictWriter(f, fieldnames=fieldnames)
                writer.writeheader()
                writer.writerows(rows)

                f.flush()
                os.fsync(f.fileno())

                unlock_file(f)

            temp_file.replace(file_path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise e

    def _read_csv(self, file_path: Path) -> list[dict[str, Any]]:
        """Read CSV file with locking.

        Args:
            file_path: CSV file to read

        Returns:
            List of row dictionaries
        """
        if not file_path.exists():
            return []

        with open(file_path, encoding="utf-8") as f:
            lock_file(f, exclusive=False)

            try:
                reader = csv.DictReader(f)
                rows = list(reader)
            finally:
                unlock_file(f)

        return rows

    # Client operations

    def add_client(self, name: str, email: str = "") -> ClientRef:
        """Create a client.

        Args:
            name: Client name
            email: Contact address

        Returns:
            Created client

        Raises:
            LedgerError: If the name is empty or already taken
        """
        name = name.strip()
        if not name:
            raise LedgerError("Client name is required")
        if any(c.name.lower() == name.lower() for c in self.load_clients()):
            raise LedgerError(f"Client already exists: {name}")

        client = ClientRef(id=str(uuid4()), name=name, email=email)
        rows = self._read_csv(self.clients_file)
        rows.append(client.to_dict())
        self._write_csv_atomic(self.clients_file, CLIENT_FIELDS, rows)
        return client

    def load_clients(self) -> list[ClientRef]:
        """Load all clients ordered by name."""
        clients = [ClientRef.from_dict(row) for row in self._read_csv(self.clients_file)]
        return sorted(clients, key=lambda c: c.name.lower())

    def get_client(self, client_id: str) -> Optional[ClientRef]:
        """Get client by ID or exact (case-insensitive) name.

        Args:
            client_id: Client ID or name

        Returns:
            Client or None if not found
        """
        for client in self.load_clients():
            if client.id == client_id or client.name.lower() == client_id.lower():
                return client
        return None

    # Project operations

    def add_project(self, name: str, client_id: str) -> ProjectRef:
        """Create a project for a client.

        Args:
            name: Project name
            client_id: Owning client ID

        Returns:
            Created project

        Raises:
            LedgerError: If the name is empty or the client does not exist
        """
        name = name.strip()
        if not name:
            raise LedgerError("Project name is required")
        if self.get_client(client_id) is None:
            raise LedgerError(f"Client not found: {client_id}")

        project = ProjectRef(id=str(uuid4()), name=name, client_id=client_id)
        rows = self._read_csv(self.projects_file)
        rows.append(project.to_dict())
        self._write_csv_atomic(self.projects_file, PROJECT_FIELDS, rows)
        return project

    def load_projects(self, client_id: Optional[str] = None) -> list[ProjectRef]:
        """Load projects ordered by name.

        Args:
            client_id: Only return projects of this client

        Returns:
            List of projects
        """
        projects = [ProjectRef.from_dict(row) for row in self._read_csv(self.projects_file)]
        if client_id is not None:
            projects = [p for p in projects if p.client_id == client_id]
        return sorted(projects, key=lambda p: p.name.lower())

    def get_project(self, project_id: str, client_id: Optional[str] = None) -> Optional[ProjectRef]:
        """Get project by ID or exact (case-insensitive) name.

        Args:
            project_id: Project ID or name
            client_id: Restrict the lookup to this client's projects

        Returns:
            Project or None if not found
        """
        for project in self.load_projects(client_id):
            if project.id == project_id or project.name.lower() == project_id.lower():
                return project
        return None

    # Time entry operations

    def insert_time_entry(self, entry: TimeEntry) -> TimeEntry:
        """Append a committed time entry.

        Args:
            entry: Entry to record

        Returns:
            The recorded entry

        Raises:
            LedgerError: If the project is unknown or the interval is invalid
        """
        if entry.end_time < entry.start_time:
            raise LedgerError("end_time must not be before start_time")
        if not any(p.id == entry.project_id for p in self.load_projects()):
            raise LedgerError(f"Project not found: {entry.project_id}")

        rows = self._read_csv(self.entries_file)
        rows.append(entry.to_dict())
        self._write_csv_atomic(self.entries_file, ENTRY_FIELDS, rows)
        logger.info(f"Recorded time entry {entry.id} ({entry.duration_seconds}s)")
        return entry

    def load_time_entries(self, limit: Optional[int] = None) -> list[TimeEntry]:
        """Load committed entries, most recent first.

        Args:
            limit: Maximum number of entries to load

        Returns:
            List of TimeEntry objects
        """
        rows = self._read_csv(self.entries_file)
        rows.sort(key=lambda r: r["start_time"], reverse=True)

        if limit:
            rows = rows[:limit]

        return [TimeEntry.from_dict(row) for row in rows]
