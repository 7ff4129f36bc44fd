from __future__ import annotations

from fastapi.testclient import TestClient

from taskservice.app.core.errors import StoreError, ValidationError
from taskservice.app.deps import get_task_store
from taskservice.main import app


class _ExplodingStore:
    def list(self):
        raise RuntimeError("secret connection string leaked")

    def create(self, fields):
        raise ValidationError(
            "Task validation failed: title: too long, completed: bad",
            details=[
                {"field": "title", "message": "too long"},
                {"field": "completed", "message": "bad"},
            ],
        )

    def update(self, task_id, fields):
        raise StoreError("Task store operation failed")

    def delete(self, task_id):
        raise StoreError("Task store operation failed")


def _client() -> TestClient:
    app.dependency_overrides[get_task_store] = lambda: _ExplodingStore()
    return TestClient(app)


def test_unexpected_error_is_generic_500(caplog) -> None:
    try:
        with caplog.at_level("ERROR", logger="taskservice.main"):
            resp = _client().get("/api/tasks")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error"}
    assert "secret" not in resp.text
    assert resp.headers["access-control-allow-origin"] == "*"
    assert any("Unhandled error on GET /api/tasks" in r.getMessage() for r in caplog.records)


def test_service_keeps_serving_after_unexpected_error() -> None:
    try:
        client = _client()
        assert client.get("/api/tasks").status_code == 500
        assert client.get("/api/health").status_code == 200
    finally:
        app.dependency_overrides.clear()


def test_multiple_field_errors_are_aggregated() -> None:
    try:
        resp = _client().post("/api/tasks", json={"title": "ok"})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 400
    assert resp.json()["details"] == [
        {"field": "title", "message": "too long"},
        {"field": "completed", "message": "bad"},
    ]


def test_store_failure_on_write_is_500() -> None:
    try:
        resp = _client().put("/api/tasks/abc", json={"completed": True})
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Task store operation failed"}
