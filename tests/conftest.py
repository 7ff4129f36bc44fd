# tests/conftest.py

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fakes import FakeCollection, FakeMongoClient, Ticker
from taskservice.adapters.task_repository_mongo import MongoStoreConnector, MongoTaskStore
from taskservice.adapters.task_repository_sql import SQLStoreConnector, SQLTaskStore
from taskservice.app.config import Settings
from taskservice.app.db import Base, make_engine, make_session_factory
from taskservice.main import create_app


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        db_connect_max_attempts=3,
        db_connect_retry_delay_sec=0,
    )


@pytest.fixture()
def clock() -> Ticker:
    return Ticker()


@pytest.fixture()
def sql_store(clock: Ticker):
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield SQLTaskStore(make_session_factory(engine), clock=clock)
    engine.dispose()


@pytest.fixture()
def mongo_store(clock: Ticker) -> MongoTaskStore:
    return MongoTaskStore(FakeCollection(), clock=clock)


@pytest.fixture(params=["sql", "mongo"])
def store(request):
    """Each contract test runs once per backend."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture(autouse=True)
def _reset_fake_mongo(monkeypatch):
    monkeypatch.setattr(FakeMongoClient, "instances", [])
    monkeypatch.setattr(FakeMongoClient, "reachable", True)


def _connector(backend: str, clock: Ticker):
    if backend == "sql":
        return SQLStoreConnector("sqlite://", clock=clock)
    return MongoStoreConnector(
        "mongodb://localhost:27017/tasksdb", client_factory=FakeMongoClient, clock=clock
    )


@pytest.fixture(params=["sql", "mongo"])
def client(request, settings: Settings, clock: Ticker):
    """HTTP client over a healthy app, once per backend."""
    app = create_app(settings, connector=_connector(request.param, clock), sleep=lambda _s: None)
    with TestClient(app) as test_client:
        yield test_client
