"""Integration tests for the SSE endpoint and board invalidation."""

import tempfile
import threading
import time
from pathlib import Path

import httpx
import pytest
import uvicorn

from boardhook.api import dependencies
from boardhook.api.app import create_app
from boardhook.auth import generate_api_key
from boardhook.board_store import BoardStore, provision_workspace
from boardhook.config import Settings

PORT = 8766


@pytest.fixture
def db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        yield f.name
    # Cleanup
    Path(f.name).unlink(missing_ok=True)
    Path(f"{f.name}-wal").unlink(missing_ok=True)
    Path(f"{f.name}-shm").unlink(missing_ok=True)


@pytest.fixture
def seeded(db_path: str):
    """Workspace, webhook and key written before the server starts."""
    store = BoardStore(db_path)
    workspace = provision_workspace(store, "Acme Ops", slug="acme")
    store.create_webhook(workspace.id, "Alerts", prompt="p")
    generated = generate_api_key()
    store.create_api_key(
        workspace.id, "ci", key_hash=generated.key_hash, key_prefix=generated.key_prefix
    )
    store.close()
    return {"workspace_id": workspace.id, "key": generated.key}


@pytest.fixture
def server(db_path: str, seeded, fake_backend_factory, make_tool_result):
    """Start the app in a background thread."""
    app = create_app(
        Settings(database_path=db_path),
        backend=fake_backend_factory(make_tool_result({"title": "From webhook"})),
    )
    config = uvicorn.Config(app, host="127.0.0.1", port=PORT, log_level="error")
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run)
    thread.daemon = True
    thread.start()

    # Wait for server to start
    deadline = time.monotonic() + 5
    while not server.started and time.monotonic() < deadline:
        time.sleep(0.05)
    yield f"http://127.0.0.1:{PORT}"

    server.should_exit = True
    thread.join(timeout=5)


@pytest.mark.integration
class TestSSE:
    """Tests for /api/events/stream."""

    def test_connection_opens(self, server: str) -> None:
        """Client can connect to the stream."""
        with (
            httpx.Client(timeout=5.0) as client,
            client.stream("GET", f"{server}/api/events/stream") as response,
        ):
            assert response.status_code == 200
            assert response.headers["content-type"] == "text/event-stream; charset=utf-8"

    def test_receives_heartbeat(self, server: str) -> None:
        """Heartbeat received within the interval."""
        dependencies._event_manager._heartbeat_interval = 1

        received_heartbeat = False
        with (
            httpx.Client(timeout=5.0) as client,
            client.stream("GET", f"{server}/api/events/stream") as response,
        ):
            for line in response.iter_lines():
                if "event: heartbeat" in line:
                    received_heartbeat = True
                    break

        assert received_heartbeat

    def test_delivery_invalidates_board(self, server: str, seeded) -> None:
        """A webhook delivery pushes board_invalidated to the workspace's subscribers."""
        responses: list[httpx.Response] = []

        def deliver() -> None:
            time.sleep(0.3)
            responses.append(
                httpx.post(
                    f"{server}/api/webhooks/acme/alerts",
                    json={"alert": "cpu"},
                    headers={"Authorization": f"Bearer {seeded['key']}"},
                    timeout=5.0,
                )
            )

        thread = threading.Thread(target=deliver)
        thread.start()

        data_line = None
        with (
            httpx.Client(timeout=5.0) as client,
            client.stream(
                "GET",
                f"{server}/api/events/stream",
                params={"workspace_id": seeded["workspace_id"]},
            ) as response,
        ):
            lines = response.iter_lines()
            for line in lines:
                if line == "event: board_invalidated":
                    data_line = next(lines)
                    break

        thread.join(timeout=5)
        assert responses[0].status_code == 200
        assert data_line is not None
        assert '"path": "/w/acme"' in data_line
