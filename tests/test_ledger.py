"""Tests for the CSV ledger."""

from datetime import datetime, timedelta
from pathlib import Path

import pytest  # type: ignore[import-not-found]

from timeflow.core.ledger import Ledger, LedgerError
from timeflow.core.models import TimeEntry


@pytest.fixture
def ledger(temp_dir: Path) -> Ledger:
    """Create a ledger in a temporary directory."""
    return Ledger(temp_dir)


def make_entry(project_id: str, hours_ago: int = 1, minutes: int = 30) -> TimeEntry:
    start = datetime.now().replace(microsecond=0) - timedelta(hours=hours_ago)
    return TimeEntry(
        project_id=project_id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        user_id="alice",
    )


class TestLedgerFiles:
    """Test ledger initialization."""

    def test_creates_csv_files(self, temp_dir: Path) -> None:
        """Test that all CSV files are created with headers."""
        Ledger(temp_dir)

        for name in ("clients.csv", "projects.csv", "time_entries.csv"):
            path = temp_dir / name
            assert path.exists()
            assert path.read_text(encoding="utf-8").startswith("id,")


class TestClients:
    """Test client operations."""

    def test_add_and_load(self, ledger: Ledger) -> None:
        """Test adding clients and loading them in name order."""
        ledger.add_client("Zeta")
        ledger.add_client("acme", "billing@acme.test")

        clients = ledger.load_clients()

        assert [c.name for c in clients] == ["acme", "Zeta"]
        assert clients[0].email == "billing@acme.test"

    def test_duplicate_name_rejected(self, ledger: Ledger) -> None:
        """Test that client names are unique regardless of case."""
        ledger.add_client("Acme")

        with pytest.raises(LedgerError, match="already exists"):
            ledger.add_client("ACME")

    def test_empty_name_rejected(self, ledger: Ledger) -> None:
        """Test that a blank client name is rejected."""
        with pytest.raises(LedgerError):
            ledger.add_client("   ")

    def test_get_by_id_or_name(self, ledger: Ledger) -> None:
        """Test client lookup."""
        client = ledger.add_client("Acme")

        assert ledger.get_client(client.id) == client
        assert ledger.get_client("acme") == client
        assert ledger.get_client("Other") is None


class TestProjects:
    """Test project operations."""

    def test_add_requires_existing_client(self, ledger: Ledger) -> None:
        """Test that projects need an owning client."""
        with pytest.raises(LedgerError, match="Client not found"):
            ledger.add_project("Website", "missing")

    def test_filter_by_client(self, ledger: Ledger) -> None:
        """Test listing only one client's projects."""
        acme = ledger.add_client("Acme")
        globex = ledger.add_client("Globex")
        ledger.add_project("Website", acme.id)
        ledger.add_project("Billing", globex.id)

        assert [p.name for p in ledger.load_projects(acme.id)] == ["Website"]
        assert len(ledger.load_projects()) == 2

    def test_get_project_scoped_to_client(self, ledger: Ledger) -> None:
        """Test that a project name is resolved within one client."""
        acme = ledger.add_client("Acme")
        globex = ledger.add_client("Globex")
        acme_site = ledger.add_project("Website", acme.id)
        globex_site = ledger.add_project("Website", globex.id)

        assert ledger.get_project("website", client_id=acme.id) == acme_site
        assert ledger.get_project("Website", client_id=globex.id) == globex_site
        assert ledger.get_project(acme_site.id) == acme_site


class TestTimeEntries:
    """Test time entry operations."""

    def test_insert_and_load_newest_first(self, ledger: Ledger) -> None:
        """Test recording entries and loading them most recent first."""
        client = ledger.add_client("Acme")
        project = ledger.add_project("Website", client.id)
        older = ledger.insert_time_entry(make_entry(project.id, hours_ago=5))
        newer = ledger.insert_time_entry(make_entry(project.id, hours_ago=1))

        entries = ledger.load_time_entries()

        assert [e.id for e in entries] == [newer.id, older.id]
        assert entries[0].duration_seconds == 1800
        assert entries[0].user_id == "alice"

    def test_limit(self, ledger: Ledger) -> None:
        """Test limiting the number of loaded entries."""
        client = ledger.add_client("Acme")
        project = ledger.add_project("Website", client.id)
        for hours_ago in range(1, 4):
            ledger.insert_time_entry(make_entry(project.id, hours_ago=hours_ago))

        assert len(ledger.load_time_entries(limit=2)) == 2

    def test_unknown_project_rejected(self, ledger: Ledger) -> None:
        """Test that entries must reference a known project."""
        with pytest.raises(LedgerError, match="Project not found"):
            ledger.insert_time_entry(make_entry("missing"))

        assert ledger.load_time_entries() == []

    def test_end_before_start_rejected(self, ledger: Ledger) -> None:
        """Test that an inverted interval is rejected."""
        client = ledger.add_client("Acme")
        project = ledger.add_project("Website", client.id)

        with pytest.raises(LedgerError):
            ledger.insert_time_entry(make_entry(project.id, minutes=-5))
