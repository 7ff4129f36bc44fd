"""Relational task store (SQLAlchemy) and its connector."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Union
from uuid import uuid4

from sqlalchemy import delete, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from taskservice.app.config import Settings
from taskservice.app.core.errors import NotFoundError, StoreError, StoreUnavailableError
from taskservice.app.db import Base, make_engine, make_session_factory
from taskservice.app.models import TaskRow
from taskservice.app.schemas import Task
from taskservice.app.task_repo_utils import (
    ensure_utc,
    utcnow,
    validate_new_task,
    validate_task_patch,
)

logger = logging.getLogger(__name__)

_CONNECTION_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


def _to_task(row: TaskRow) -> Task:
    return Task(
        id=row.id,
        title=row.title,
        description=row.description,
        completed=bool(row.completed),
        created_at=ensure_utc(row.created_at),
    )


class SQLTaskStore:
    """Task store persisted as rows of the `tasks` table."""

    def __init__(
        self,
        session_factory: sessionmaker,
        *,
        clock: Callable[[], Any] = utcnow,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._id_factory = id_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session: Session = self._session_factory()
        try:
            yield session
        except _CONNECTION_ERRORS as exc:
            logger.warning("SQL connection failure: %s", exc, extra={"backend": "sql"})
            raise StoreUnavailableError(cause=exc) from exc
        except SQLAlchemyError as exc:
            logger.error("SQL store failure: %s", exc, extra={"backend": "sql"})
            raise StoreError("Task store operation failed", cause=exc) from exc
        finally:
            session.close()

    def create(self, fields: Mapping[str, Any]) -> Task:
        values = validate_new_task(fields)
        row = TaskRow(id=self._id_factory(), created_at=self._clock(), **values)
        with self._session() as session:
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task(row)

    def list(self) -> list[Task]:
        with self._session() as session:
            rows = session.query(TaskRow).order_by(TaskRow.created_at.desc()).all()
            return [_to_task(row) for row in rows]

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task:
        patch = validate_task_patch(fields)
        with self._session() as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                raise NotFoundError()
            for key, value in patch.items():
                setattr(row, key, value)
            try:
                session.commit()
            except StaleDataError as exc:
                # deleted between the read and the write
                raise NotFoundError(cause=exc) from exc
            # read the full row back rather than trusting the in-memory copy
            session.refresh(row)
            return _to_task(row)

    def delete(self, task_id: str) -> None:
        with self._session() as session:
            result = session.execute(delete(TaskRow).where(TaskRow.id == task_id))
            session.commit()
            if result.rowcount == 0:
                raise NotFoundError()


class SQLStoreConnector:
    """Owns the SQLAlchemy engine behind a SQLTaskStore."""

    backend = "sql"

    def __init__(
        self,
        url: Union[str, URL],
        *,
        connect_args: Optional[dict] = None,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self._url = url
        self._connect_args = dict(connect_args or {})
        self._clock = clock
        self._engine: Optional[Engine] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SQLStoreConnector":
        if settings.sql_database_url:
            return cls(settings.sql_database_url)
        creds = settings.sql_credentials()
        url = URL.create(
            "postgresql+psycopg",
            username=creds["user"],
            password=creds["password"] or None,
            host=creds["host"],
            port=creds["port"],
            database=creds["database"],
        )
        connect_args = {"sslmode": "require"} if settings.use_tls else {}
        return cls(url, connect_args=connect_args)

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    def connect(self) -> None:
        engine = make_engine(self._url, connect_args=self._connect_args)
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            engine.dispose()
            raise
        self._engine = engine

    def sync_schema(self) -> None:
        # safe no-op if the table already exists
        Base.metadata.create_all(bind=self._engine)

    def store(self) -> SQLTaskStore:
        if self._engine is None:
            raise StoreUnavailableError()
        return SQLTaskStore(make_session_factory(self._engine), clock=self._clock)

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
