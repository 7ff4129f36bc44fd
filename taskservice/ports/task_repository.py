"""Port interfaces for task persistence and store connections."""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable

from taskservice.app.schemas import Task


@runtime_checkable
class ITaskStore(Protocol):
    """Task store abstraction for create/list/update/delete operations."""

    def create(self, fields: Mapping[str, Any]) -> Task:
        """Validate, apply defaults, persist and return the stored task."""

    def list(self) -> list[Task]:
        """Return every task, newest first."""

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        """Merge the supplied fields onto an existing task and return it."""

    def delete(self, task_id: str) -> None:
        """Remove a task; raises NotFoundError when it does not exist."""


@runtime_checkable
class IStoreConnector(Protocol):
    """Opens and releases the connection behind one store backend."""

    backend: str

    def connect(self) -> None:
        """Open the connection and verify it is reachable; raise on failure."""

    def sync_schema(self) -> None:
        """One-time schema synchronization after a successful connect."""

    def store(self) -> ITaskStore:
        """Return the store bound to the open connection."""

    def close(self) -> None:
        """Release the connection; safe to call when never connected."""
