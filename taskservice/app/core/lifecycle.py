"""Boot-time store connection: bounded fixed-delay retry and degraded mode."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, TypeVar

from taskservice.app.core.errors import StoreUnavailableError
from taskservice.ports.task_repository import IStoreConnector, ITaskStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CLOSED = "closed"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    delay_sec: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.delay_sec < 0:
            raise ValueError("delay_sec must be >= 0")


def connect_with_retry(
    open_connection: Callable[[], T],
    policy: RetryPolicy,
    *,
    label: str = "store",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call `open_connection` until it succeeds or the policy is exhausted.

    Waits a fixed `policy.delay_sec` between attempts (never after the last one)
    and re-raises the last error once every attempt has failed.
    """

    last_exc: Optional[BaseException] = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            result = open_connection()
        except Exception as exc:
            last_exc = exc
            logger.warning(
                "Connection attempt %d/%d failed: %s",
                attempt,
                policy.max_attempts,
                exc,
                extra={"backend": label, "attempt": attempt},
            )
            if attempt < policy.max_attempts:
                sleep(policy.delay_sec)
            continue
        logger.info(
            "Connection attempt %d/%d succeeded",
            attempt,
            policy.max_attempts,
            extra={"backend": label, "attempt": attempt},
        )
        return result
    assert last_exc is not None
    raise last_exc


class ConnectionManager:
    """Tracks the store connection state and hands out the store when healthy.

    There is no background reconnection: once degraded, the process keeps
    serving (health probe included) until it is restarted.
    """

    def __init__(
        self,
        connector: IStoreConnector,
        policy: Optional[RetryPolicy] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.connector = connector
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._store: Optional[ITaskStore] = None
        self.state = ConnectionState.CONNECTING
        self.last_error: Optional[str] = None

    @property
    def backend(self) -> str:
        return self.connector.backend

    def _transition(self, state: ConnectionState) -> None:
        self.state = state
        logger.info(
            "Store connection state -> %s",
            state.value,
            extra={"backend": self.backend, "state": state.value},
        )

    def start(self) -> ConnectionState:
        self._transition(ConnectionState.CONNECTING)
        try:
            connect_with_retry(
                self.connector.connect,
                self.policy,
                label=self.backend,
                sleep=self._sleep,
            )
        except Exception as exc:
            self.last_error = str(exc)
            logger.error(
                "Giving up on store connection after %d attempts; serving in degraded mode",
                self.policy.max_attempts,
                extra={"backend": self.backend},
            )
            self._transition(ConnectionState.DEGRADED)
            return self.state

        self._transition(ConnectionState.HEALTHY)
        try:
            self.connector.sync_schema()
            self._store = self.connector.store()
        except Exception as exc:
            self.last_error = str(exc)
            logger.exception(
                "Schema synchronization failed; serving in degraded mode",
                extra={"backend": self.backend},
            )
            self.connector.close()
            self._transition(ConnectionState.DEGRADED)
            return self.state
        logger.info("Schema synchronized", extra={"backend": self.backend, "state": self.state.value})
        return self.state

    def require_store(self) -> ITaskStore:
        if self.state is not ConnectionState.HEALTHY or self._store is None:
            raise StoreUnavailableError()
        return self._store

    def close(self) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self._store = None
        try:
            self.connector.close()
        finally:
            self._transition(ConnectionState.CLOSED)
        logger.info("Store connection closed", extra={"backend": self.backend})
