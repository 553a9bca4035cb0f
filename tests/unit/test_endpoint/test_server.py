"""Tests for the agent HTTP server."""

from __future__ import annotations

import shutil
import sys
import time
from typing import Callable, Iterator
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from execagent.core.errors import ProcessTerminationError
from execagent.core.registry import ExecutionRegistry
from execagent.core.terminator import ProcessTerminator
from execagent.domain.models import Command, Execution
from execagent.endpoint.server import create_app


@pytest.fixture
def mock_terminator() -> AsyncMock:
    """A mock ProcessTerminator with stop() stubbed."""
    terminator = AsyncMock(spec=ProcessTerminator)
    terminator.stop.return_value = "Process tail was stopped"
    return terminator


@pytest.fixture
def client(registry: ExecutionRegistry, mock_terminator: AsyncMock) -> Iterator[TestClient]:
    """A running agent with a fast poll interval and a mock terminator."""
    app = create_app(
        registry=registry,
        terminator=mock_terminator,
        timeout=10.0,
        poll_interval=0.05,
    )
    with TestClient(app) as c:
        yield c


def _poll_until_terminal(client: TestClient, execution_id: str, timeout: float = 10.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        data = client.get(f"/status/{execution_id}").json()
        if data["status"] != "IN PROGRESS" or time.monotonic() > deadline:
            return data
        time.sleep(0.05)


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["collector_running"] is True
        assert data["executions"] == 0


class TestExecEndpoint:
    @pytest.mark.skipif(shutil.which("echo") is None, reason="needs echo")
    def test_sync_echo(self, client: TestClient) -> None:
        resp = client.post("/exec", json={"command": "echo", "args": ["hello"], "sync": True})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "SUCCESS"
        assert data["results"] == ["hello"]
        assert data["id"].startswith("cmd-")

    @pytest.mark.skipif(shutil.which("echo") is None, reason="needs echo")
    def test_sync_with_null_args(self, client: TestClient) -> None:
        resp = client.post("/exec", json={"command": "echo", "args": None, "sync": True})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "SUCCESS"
        assert data["results"] == [""]

    def test_sync_via_put(self, client: TestClient, python_command: Callable[..., Command]) -> None:
        cmd = python_command("print('put')", sync=True)
        resp = client.put("/exec", json=cmd.model_dump())
        assert resp.status_code == 200
        assert resp.json()["results"] == ["put"]

    def test_sync_missing_binary(self, client: TestClient, missing_command: Command) -> None:
        resp = client.post("/exec", json=missing_command.model_dump())
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "FAILURE"
        assert len(data["results"]) == 1
        assert "execagent-no-such-binary-7f3a" in data["results"][0]

    def test_sync_nonzero_exit(self, client: TestClient, python_command: Callable[..., Command]) -> None:
        resp = client.post("/exec", json=python_command("raise SystemExit(4)", sync=True).model_dump())
        assert resp.json()["status"] == "FAILURE"
        assert resp.json()["results"] == ["exit status 4"]

    def test_async_returns_id_then_completes(
        self, client: TestClient, python_command: Callable[..., Command]
    ) -> None:
        cmd = python_command("import time; time.sleep(0.3); print('late')")
        resp = client.post("/exec", json=cmd.model_dump())
        assert resp.status_code == 200
        body = resp.json()
        assert set(body) == {"id"}

        first = client.get(f"/status/{body['id']}").json()
        assert first["status"] in ("IN PROGRESS", "SUCCESS")
        if first["status"] == "IN PROGRESS":
            assert first["results"] == []

        final = _poll_until_terminal(client, body["id"])
        assert final == {"id": body["id"], "status": "SUCCESS", "results": ["late"]}

    def test_async_missing_binary_fails(self, client: TestClient, missing_command: Command) -> None:
        cmd = missing_command.model_copy(update={"sync": False})
        execution_id = client.post("/exec", json=cmd.model_dump()).json()["id"]
        final = _poll_until_terminal(client, execution_id)
        assert final["status"] == "FAILURE"
        assert len(final["results"]) == 1

    def test_concurrent_ids_are_distinct(
        self, client: TestClient, python_command: Callable[..., Command]
    ) -> None:
        cmd = python_command("pass")
        ids = {client.post("/exec", json=cmd.model_dump()).json()["id"] for _ in range(8)}
        assert len(ids) == 8
        for execution_id in ids:
            assert _poll_until_terminal(client, execution_id)["status"] == "SUCCESS"

    def test_get_not_allowed(self, client: TestClient) -> None:
        assert client.get("/exec").status_code == 405

    def test_malformed_json(self, client: TestClient) -> None:
        resp = client.post(
            "/exec", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status_code == 400

    def test_missing_command_field(self, client: TestClient) -> None:
        resp = client.post("/exec", json={"args": ["x"]})
        assert resp.status_code == 400

    def test_wrong_arg_type(self, client: TestClient) -> None:
        resp = client.post("/exec", json={"command": "ls", "args": "not-a-list"})
        assert resp.status_code == 400

    def test_not_running_without_lifespan(self) -> None:
        client = TestClient(create_app())
        resp = client.post("/exec", json={"command": "ls"})
        assert resp.status_code == 503


class TestStatusEndpoint:
    def test_unknown_id(self, client: TestClient) -> None:
        resp = client.get("/status/invalid")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Unknown command ID invalid"

    def test_missing_id(self, client: TestClient) -> None:
        resp = client.get("/status/")
        assert resp.status_code == 400
        assert "missing command ID" in resp.json()["detail"]

    def test_in_progress_record(self, client: TestClient, registry: ExecutionRegistry) -> None:
        execution_id = registry.register()
        resp = client.get(f"/status/{execution_id}")
        assert resp.status_code == 200
        assert resp.json() == {"id": execution_id, "status": "IN PROGRESS", "results": []}

    def test_terminal_record(self, client: TestClient, registry: ExecutionRegistry) -> None:
        execution_id = registry.register()
        registry.apply(Execution.failed(execution_id, "signal: SIGKILL"))
        resp = client.get(f"/status/{execution_id}")
        assert resp.json() == {"id": execution_id, "status": "FAILURE", "results": ["signal: SIGKILL"]}

    def test_post_not_allowed(self, client: TestClient) -> None:
        assert client.post("/status/cmd-1").status_code == 405


class TestFindAndStopEndpoint:
    def test_stop_success(self, client: TestClient, mock_terminator: AsyncMock) -> None:
        resp = client.post("/findandstop", json={"command": "tail", "args": [], "sync": True})
        assert resp.status_code == 200
        assert resp.json()["results"] == ["Process tail was stopped"]
        mock_terminator.stop.assert_called_once_with("tail")

    def test_stop_with_null_args(self, client: TestClient, mock_terminator: AsyncMock) -> None:
        resp = client.post("/findandstop", json={"command": "tail", "args": None, "sync": False})
        assert resp.status_code == 200
        mock_terminator.stop.assert_called_once_with("tail")

    def test_stop_via_put(self, client: TestClient, mock_terminator: AsyncMock) -> None:
        resp = client.put("/findandstop", json={"command": "tail"})
        assert resp.status_code == 200

    def test_stop_failure(self, client: TestClient, mock_terminator: AsyncMock) -> None:
        mock_terminator.stop.side_effect = ProcessTerminationError(
            "Failed to parse process ID for process ghost: invalid literal"
        )
        resp = client.post("/findandstop", json={"command": "ghost"})
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Could not stop process Failed to parse process ID")

    def test_malformed_body(self, client: TestClient, mock_terminator: AsyncMock) -> None:
        resp = client.post("/findandstop", json={"name": "tail"})
        assert resp.status_code == 400
        mock_terminator.stop.assert_not_called()

    def test_get_not_allowed(self, client: TestClient) -> None:
        assert client.get("/findandstop").status_code == 405


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX process listing")
class TestFindAndStopIntegration:
    def test_unknown_process_is_bad_request(self, registry: ExecutionRegistry) -> None:
        app = create_app(registry=registry, stop_timeout=5.0)
        with TestClient(app) as c:
            resp = c.post("/findandstop", json={"command": "execagent-no-such-proc"})
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Could not stop process")
