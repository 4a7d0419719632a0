"""Tests for the control API."""

import os
from functools import partial
from unittest.mock import MagicMock

import pytest

# Set test environment variables before imports that might trigger Settings
os.environ.setdefault("WATCHED_FILE_PATH", "/tmp/git-file-watch/workbook.xlsx")

from fastapi.testclient import TestClient

from conftest import FakeRunner
from src.orchestrator import main
from src.orchestrator.config import Settings
from src.orchestrator.monitor import ChangeMonitor


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def client(monkeypatch, workbook, runner):
    """App wired to a fake git runner and a mocked file system observer."""
    monkeypatch.setattr(main, "settings", Settings(watched_file_path=str(workbook), debounce_delay_seconds=0.01))
    monkeypatch.setattr(
        main,
        "WatchSession",
        partial(
            main.WatchSession,
            runner=runner,
            opener=MagicMock(),
            monitor_factory=partial(ChangeMonitor, observer_factory=MagicMock),
        ),
    )
    with TestClient(main.app) as test_client:
        yield test_client


class TestEndpoints:
    """Test the HTTP surface."""

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_status_reports_target(self, client, workbook):
        data = client.get("/status").json()

        assert data["watched_file"] == str(workbook)
        assert data["relative_path"] == "workbook.xlsx"
        assert data["watching"] is True
        assert data["suppressed"] is False
        assert data["commit_prompt_pending"] is False

    def test_commit_with_blank_message(self, client, runner):
        resp = client.post("/commit", json={"message": "  ", "push": True})

        assert resp.status_code == 200
        assert resp.json() == {
            "success": False,
            "message": "Commit message cannot be empty.",
            "kind": "validation",
        }
        assert runner.calls == []

    def test_commit_and_push(self, client, runner):
        runner.script("diff", exit_code=1)

        resp = client.post("/commit", json={"message": "Update totals", "push": True})

        assert resp.json()["success"] is True
        assert runner.subcommands() == ["add", "diff", "commit", "push"]

    def test_pull_conflict(self, client, runner):
        runner.script("status", stdout=" M workbook.xlsx\n")

        data = client.post("/pull").json()

        assert data["success"] is False
        assert data["kind"] == "conflict"
        assert "local or staged changes" in data["message"]

    def test_push(self, client, runner):
        assert client.post("/push").json()["message"] == "Push completed."
        assert runner.calls == [("push",)]

    def test_notices_listed(self, client, runner):
        runner.script("push", exit_code=1, stderr="rejected")
        client.post("/push")

        notices = client.get("/notices").json()

        assert notices[-1]["title"] == "Push failed"
        assert notices[-1]["level"] == "error"

    def test_watch_new_file(self, client, tmp_path):
        other = tmp_path / "other"
        other.mkdir()

        resp = client.put("/watch", json={"path": str(other / "budget.xlsx")})

        assert resp.status_code == 200
        assert client.get("/status").json()["relative_path"] == "budget.xlsx"

    def test_watch_rejects_missing_repository(self, client, tmp_path, workbook):
        resp = client.put("/watch", json={"path": str(tmp_path / "nope" / "budget.xlsx")})

        assert resp.status_code == 400
        assert client.get("/status").json()["watched_file"] == str(workbook)

    def test_open(self, client):
        assert client.post("/open").json() == {"opened": True}
