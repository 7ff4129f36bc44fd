from datetime import datetime, timezone

from fastapi.testclient import TestClient

from taskservice.main import app


def test_health_reports_environment_and_timestamp(client) -> None:
    before = datetime.now(timezone.utc)
    resp = client.get("/api/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["environment"] == "test"
    assert data["database"] == "healthy"
    stamp = datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
    assert stamp >= before


def test_health_answers_before_startup_completes() -> None:
    # no lifespan: the connection was never attempted
    resp = TestClient(app).get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["database"] == "connecting"


def test_root_serves_index_document() -> None:
    resp = TestClient(app).get("/")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/html")
    assert "<title>Tasks</title>" in resp.text
    assert resp.headers["access-control-allow-origin"] == "*"


def test_static_missing_asset_is_404() -> None:
    resp = TestClient(app).get("/static/missing.js")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Route not found"}
