"""Dependency providers: store connector selection and per-request store access."""

from __future__ import annotations

import logging

from fastapi import Request

from taskservice.app.config import Settings
from taskservice.app.core.lifecycle import ConnectionManager, RetryPolicy
from taskservice.ports.task_repository import IStoreConnector, ITaskStore

logger = logging.getLogger(__name__)


def build_connector(settings: Settings) -> IStoreConnector:
    """Return the connector for the configured backend; exactly one per process."""
    backend = settings.task_store_backend
    logger.info("TaskStore backend=%s", backend, extra={"backend": backend})
    if backend == "sql":
        from taskservice.adapters.task_repository_sql import SQLStoreConnector

        return SQLStoreConnector.from_settings(settings)
    from taskservice.adapters.task_repository_mongo import MongoStoreConnector

    return MongoStoreConnector.from_settings(settings)


def retry_policy_from(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=settings.db_connect_max_attempts,
        delay_sec=settings.db_connect_retry_delay_sec,
    )


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager


def get_task_store(request: Request) -> ITaskStore:
    """Resolve the live store; raises StoreUnavailableError in degraded mode."""
    return get_connection_manager(request).require_store()
