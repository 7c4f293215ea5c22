"""Tests for the REST API."""

import threading
from pathlib import Path

import pytest  # type: ignore[import-not-found]
from fastapi.testclient import TestClient  # type: ignore[import-untyped]

from timeflow.api import create_app
from timeflow.api.auth import create_token_for_user
from timeflow.core.config import ConfigManager
from timeflow.core.ledger import Ledger, LedgerError
from timeflow.core.session import create_controller


@pytest.fixture
def test_config(temp_dir: Path) -> ConfigManager:
    """Create a test configuration."""
    config = ConfigManager(temp_dir / "config.yml")
    config.set("general.data_dir", str(temp_dir / "data"))
    config.set("timer.tick_interval", 0.05)
    return config


@pytest.fixture
def ledger(test_config: ConfigManager) -> Ledger:
    """Create a ledger with one client and project."""
    ledger = Ledger(test_config.data_dir)
    acme = ledger.add_client("Acme")
    ledger.add_project("Website", acme.id)
    return ledger


@pytest.fixture
def client(test_config: ConfigManager, ledger: Ledger):
    """Create a test client; leaving the context shuts the ticker down."""
    with TestClient(create_app(test_config, ledger=ledger)) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(test_config: ConfigManager) -> dict[str, str]:
    """Get authentication headers for user alice."""
    token_data = create_token_for_user(test_config, user_id="alice")
    return {"Authorization": f"Bearer {token_data['access_token']}"}


def start(client: TestClient, headers: dict[str, str], **body):
    payload = {"client_id": "Acme", "project_id": "Website", **body}
    return client.post("/api/v1/timer/start", json=payload, headers=headers)


class TestSystem:
    """Test system endpoints."""

    def test_health_is_public(self, client: TestClient) -> None:
        """Test health check without authentication."""
        response = client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status(self, client: TestClient, auth_headers: dict) -> None:
        """Test server status."""
        response = client.get("/api/v1/status", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["timer_status"] == "stopped"
        assert data["authentication_enabled"] is True


class TestAuthentication:
    """Test bearer token handling."""

    def test_missing_token(self, client: TestClient) -> None:
        """Test that protected endpoints need a token."""
        response = client.get("/api/v1/timer")

        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient, test_config: ConfigManager) -> None:
        """Test that a forged token is rejected."""
        test_config.ensure_api_secret_key()

        response = client.get("/api/v1/timer", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    def test_authentication_disabled(self, test_config: ConfigManager, ledger: Ledger) -> None:
        """Test that disabled authentication accepts anonymous requests."""
        test_config.set("api.authentication.enabled", False)

        with TestClient(create_app(test_config, ledger=ledger)) as anonymous:
            response = anonymous.get("/api/v1/timer")

        assert response.status_code == 200


class TestTimerEndpoints:
    """Test the timer lifecycle over HTTP."""

    def test_get_idle_timer(self, client: TestClient, auth_headers: dict) -> None:
        """Test the stopped state."""
        response = client.get("/api/v1/timer", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "stopped"
        assert data["elapsed"] == "00:00:00"
        assert data["title"] == "TimeFlow"

    def test_start(self, client: TestClient, auth_headers: dict) -> None:
        """Test starting the timer."""
        response = start(client, auth_headers, description="Landing page")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "running"
        assert data["client"]["name"] == "Acme"
        assert data["project"]["name"] == "Website"
        assert data["description"] == "Landing page"
        assert data["start_time"] is not None

    def test_start_unknown_project(self, client: TestClient, auth_headers: dict) -> None:
        """Test that an unknown project is a 404."""
        response = start(client, auth_headers, project_id="Nope")

        assert response.status_code == 404

    def test_start_twice(self, client: TestClient, auth_headers: dict) -> None:
        """Test that a second start is a 400."""
        start(client, auth_headers)

        response = start(client, auth_headers)

        assert response.status_code == 400
        assert "already running" in response.json()["detail"]

    def test_pause_resume(self, client: TestClient, auth_headers: dict) -> None:
        """Test pausing and resuming."""
        start(client, auth_headers)

        response = client.post("/api/v1/timer/pause", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "paused"

        response = client.post("/api/v1/timer/pause", headers=auth_headers)
        assert response.status_code == 400

        response = client.post("/api/v1/timer/resume", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_stop_commits_for_token_user(
        self, client: TestClient, auth_headers: dict, ledger: Ledger
    ) -> None:
        """Test that the committed entry belongs to the token subject."""
        start(client, auth_headers, billable=False)

        response = client.post(
            "/api/v1/timer/stop", json={"description": "Done"}, headers=auth_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == "alice"
        assert data["description"] == "Done"
        assert data["billable"] is False

        entries = ledger.load_time_entries()
        assert [str(e.id) for e in entries] == [data["id"]]

        response = client.get("/api/v1/timer", headers=auth_headers)
        assert response.json()["status"] == "stopped"

    def test_stop_without_timer(self, client: TestClient, auth_headers: dict) -> None:
        """Test that stopping nothing is a 400."""
        response = client.post("/api/v1/timer/stop", headers=auth_headers)

        assert response.status_code == 400

    def test_commit_failure_is_502(
        self,
        test_config: ConfigManager,
        ledger: Ledger,
        auth_headers: dict,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that a ledger failure keeps the timer running."""
        controller = create_controller(test_config, ledger=ledger)

        def reject(entry):
            raise LedgerError("disk full")

        with TestClient(create_app(test_config, controller=controller, ledger=ledger)) as api:
            start(api, auth_headers)
            monkeypatch.setattr(ledger, "insert_time_entry", reject)

            response = api.post("/api/v1/timer/stop", headers=auth_headers)
            assert response.status_code == 502

            response = api.get("/api/v1/timer", headers=auth_headers)
            assert response.json()["status"] == "running"

    def test_events_applied_on_endpoint_thread(
        self, test_config: ConfigManager, ledger: Ledger, auth_headers: dict
    ) -> None:
        """Test that ticker events and transitions touch the controller from one thread."""
        controller = create_controller(test_config, ledger=ledger)
        threads: set[int] = set()
        process_events = controller.process_events

        def recording_process_events(timeout: float = 0.0) -> int:
            threads.add(threading.get_ident())
            return process_events(timeout)

        controller.process_events = recording_process_events  # type: ignore[method-assign]
        controller.on_change = lambda snapshot: threads.add(threading.get_ident())

        with TestClient(create_app(test_config, controller=controller, ledger=ledger)) as api:
            start(api, auth_headers)
            api.post("/api/v1/timer/pause", headers=auth_headers)

        assert len(threads) == 1

    def test_discard(self, client: TestClient, auth_headers: dict, ledger: Ledger) -> None:
        """Test discarding the timer."""
        start(client, auth_headers)

        response = client.post("/api/v1/timer/discard", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "stopped"
        assert ledger.load_time_entries() == []

        response = client.post("/api/v1/timer/discard", headers=auth_headers)
        assert response.status_code == 400

    def test_update_description(self, client: TestClient, auth_headers: dict) -> None:
        """Test changing the description mid-run."""
        start(client, auth_headers)

        response = client.put(
            "/api/v1/timer/description", json={"description": "Hero image"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["description"] == "Hero image"

    def test_sync(self, client: TestClient, auth_headers: dict) -> None:
        """Test the resynchronization endpoint."""
        start(client, auth_headers)

        response = client.post("/api/v1/timer/sync", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_timer_survives_app_restart(
        self, test_config: ConfigManager, ledger: Ledger, auth_headers: dict
    ) -> None:
        """Test that a new app picks up the persisted timer."""
        with TestClient(create_app(test_config, ledger=ledger)) as first:
            start(first, auth_headers, description="Carry over")

        with TestClient(create_app(test_config, ledger=ledger)) as second:
            response = second.get("/api/v1/timer", headers=auth_headers)

        assert response.json()["status"] == "running"
        assert response.json()["description"] == "Carry over"


class TestCatalogEndpoints:
    """Test client, project and entry endpoints."""

    def test_list_clients(self, client: TestClient, auth_headers: dict) -> None:
        response = client.get("/api/v1/clients", headers=auth_headers)

        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Acme"]

    def test_create_client(self, client: TestClient, auth_headers: dict) -> None:
        """Test creating a client and rejecting a duplicate."""
        response = client.post(
            "/api/v1/clients", json={"name": "Globex"}, headers=auth_headers
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Globex"

        response = client.post("/api/v1/clients", json={"name": "globex"}, headers=auth_headers)
        assert response.status_code == 409

    def test_projects_by_client(self, client: TestClient, auth_headers: dict) -> None:
        """Test creating and filtering projects."""
        response = client.post(
            "/api/v1/projects", json={"name": "Mobile", "client_id": "Acme"}, headers=auth_headers
        )
        assert response.status_code == 201

        response = client.get("/api/v1/projects?client_id=Acme", headers=auth_headers)
        assert [p["name"] for p in response.json()] == ["Mobile", "Website"]

        response = client.get("/api/v1/projects?client_id=Nobody", headers=auth_headers)
        assert response.status_code == 404

    def test_list_entries(self, client: TestClient, auth_headers: dict) -> None:
        """Test that committed entries are listed."""
        start(client, auth_headers)
        client.post("/api/v1/timer/stop", headers=auth_headers)

        response = client.get("/api/v1/entries", headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1
