"""MongoDB-backed task store (document backend) and its connector."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import ConnectionFailure, PyMongoError

from taskservice.app.config import Settings
from taskservice.app.core.errors import NotFoundError, StoreError, StoreUnavailableError
from taskservice.app.schemas import Task
from taskservice.app.task_repo_utils import (
    ensure_utc,
    utcnow,
    validate_new_task,
    validate_task_patch,
)

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "tasksdb"
COLLECTION_NAME = "tasks"


def _object_id(task_id: str) -> ObjectId:
    # a malformed id cannot match any document
    if not ObjectId.is_valid(task_id):
        raise NotFoundError()
    return ObjectId(task_id)


def _to_task(doc: Mapping[str, Any]) -> Task:
    return Task(
        id=str(doc["_id"]),
        title=doc.get("title"),
        description=doc.get("description"),
        completed=bool(doc.get("completed", False)),
        created_at=ensure_utc(doc["createdAt"]),
    )


class MongoTaskStore:
    """Task store persisted as documents in the `tasks` collection."""

    def __init__(self, collection: Any, *, clock: Callable[[], Any] = utcnow) -> None:
        self._collection = collection
        self._clock = clock

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except ConnectionFailure as exc:
            logger.warning("MongoDB connection failure: %s", exc, extra={"backend": "mongo"})
            raise StoreUnavailableError(cause=exc) from exc
        except PyMongoError as exc:
            logger.error("MongoDB store failure: %s", exc, extra={"backend": "mongo"})
            raise StoreError("Task store operation failed", cause=exc) from exc

    def create(self, fields: Mapping[str, Any]) -> Task:
        doc = validate_new_task(fields)
        now = self._clock()
        # BSON dates keep milliseconds; return what later reads will see
        doc["createdAt"] = now.replace(microsecond=now.microsecond // 1000 * 1000)
        with self._guard():
            result = self._collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return _to_task(doc)

    def list(self) -> list[Task]:
        with self._guard():
            docs = list(self._collection.find().sort("createdAt", DESCENDING))
        return [_to_task(doc) for doc in docs]

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        patch = validate_task_patch(fields)
        oid = _object_id(task_id)
        with self._guard():
            if patch:
                doc = self._collection.find_one_and_update(
                    {"_id": oid},
                    {"$set": patch},
                    return_document=ReturnDocument.AFTER,
                )
            else:
                doc = self._collection.find_one({"_id": oid})
        if doc is None:
            raise NotFoundError()
        return _to_task(doc)

    def delete(self, task_id: str) -> None:
        oid = _object_id(task_id)
        with self._guard():
            result = self._collection.delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise NotFoundError()


class MongoStoreConnector:
    """Owns the MongoClient behind a MongoTaskStore."""

    backend = "mongo"

    def __init__(
        self,
        uri: str,
        *,
        database: Optional[str] = None,
        tls: bool = False,
        client_factory: Callable[..., Any] = MongoClient,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self._uri = uri
        self._database = database
        self._tls = tls
        self._client_factory = client_factory
        self._clock = clock
        self._client: Any = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoStoreConnector":
        return cls(settings.mongo_uri, database=settings.mongo_db, tls=settings.use_tls)

    def _client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {
            "retryWrites": True,
            "w": "majority",
            "serverSelectionTimeoutMS": 5000,
            "socketTimeoutMS": 45000,
            "tz_aware": True,
        }
        if self._tls:
            options["tls"] = True
        return options

    def connect(self) -> None:
        # MongoClient connects lazily; ping forces server selection
        client = self._client_factory(self._uri, **self._client_options())
        try:
            client.admin.command("ping")
        except PyMongoError:
            client.close()
            raise
        self._client = client

    def _collection(self) -> Any:
        if self._database:
            db = self._client[self._database]
        else:
            db = self._client.get_default_database(default=DEFAULT_DATABASE)
        return db[COLLECTION_NAME]

    def sync_schema(self) -> None:
        self._collection().create_index([("createdAt", DESCENDING)])

    def store(self) -> MongoTaskStore:
        if self._client is None:
            raise StoreUnavailableError()
        return MongoTaskStore(self._collection(), clock=self._clock)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
