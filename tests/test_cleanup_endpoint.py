"""Tests for the cleanup and health endpoints."""

from fastapi.testclient import TestClient

from burnchat.api.app import create_app
from tests.conftest import InMemoryReaperRepository


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_cleanup_requires_token(
    container, reaper_repository: InMemoryReaperRepository
) -> None:
    client = TestClient(create_app(container))

    missing = client.post("/cleanup-expired")
    wrong = client.post("/cleanup-expired", headers={"X-Cleanup-Token": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert reaper_repository.calls == []


def test_cleanup_runs_reaper(
    container, reaper_repository: InMemoryReaperRepository
) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/cleanup-expired", headers={"X-Cleanup-Token": "cleanup-token"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Cleanup completed successfully"
    assert "timestamp" in data
    assert reaper_repository.calls == ["messages", "chats"]


def test_cleanup_reports_failure(
    container, reaper_repository: InMemoryReaperRepository
) -> None:
    reaper_repository.fail_chats = True
    client = TestClient(create_app(container))

    response = client.post(
        "/cleanup-expired", headers={"X-Cleanup-Token": "cleanup-token"}
    )

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert reaper_repository.calls == ["messages", "chats"]
