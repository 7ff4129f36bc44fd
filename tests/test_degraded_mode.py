from __future__ import annotations

from fastapi.testclient import TestClient

from fakes import FakeMongoClient, ScriptedConnector
from taskservice.adapters.task_repository_mongo import MongoStoreConnector
from taskservice.main import create_app


def _degraded_app(settings, connector):
    sleeps: list[float] = []
    app = create_app(settings, connector=connector, sleep=sleeps.append)
    return app, sleeps


def test_health_stays_up_when_store_never_connects(settings) -> None:
    connector = ScriptedConnector(failures=99)
    app, sleeps = _degraded_app(settings, connector)

    with TestClient(app) as client:
        resp = client.get("/api/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["database"] == "degraded"
    assert connector.connect_calls == settings.db_connect_max_attempts
    assert len(sleeps) == settings.db_connect_max_attempts - 1


def test_task_operations_fail_with_500_in_degraded_mode(settings) -> None:
    app, _ = _degraded_app(settings, ScriptedConnector(failures=99))

    with TestClient(app) as client:
        responses = [
            client.get("/api/tasks"),
            client.post("/api/tasks", json={"title": "Buy milk"}),
            client.put("/api/tasks/abc", json={"completed": True}),
            client.delete("/api/tasks/abc"),
        ]
        root = client.get("/")

    for resp in responses:
        assert resp.status_code == 500
        assert resp.json() == {"error": "Task store is unavailable"}
        assert resp.headers["access-control-allow-origin"] == "*"
    assert root.status_code == 200


def test_unreachable_mongo_degrades_and_releases_clients(settings, monkeypatch) -> None:
    monkeypatch.setattr(FakeMongoClient, "reachable", False)
    connector = MongoStoreConnector("mongodb://db:27017/tasksdb", client_factory=FakeMongoClient)
    app, _ = _degraded_app(settings, connector)

    with TestClient(app) as client:
        assert client.get("/api/health").json()["database"] == "degraded"
        assert client.get("/api/tasks").status_code == 500

    assert len(FakeMongoClient.instances) == settings.db_connect_max_attempts
    assert all(c.closed for c in FakeMongoClient.instances)


def test_store_recovers_only_on_restart(settings) -> None:
    connector = ScriptedConnector(failures=settings.db_connect_max_attempts)
    app, _ = _degraded_app(settings, connector)

    with TestClient(app) as client:
        assert client.get("/api/health").json()["database"] == "degraded"
        # the database is reachable now, but nothing reconnects in the background
        assert client.get("/api/tasks").status_code == 500
    assert connector.connect_calls == settings.db_connect_max_attempts

    with TestClient(app) as client:
        assert client.get("/api/health").json()["database"] == "healthy"
        assert client.get("/api/tasks").json() == []
