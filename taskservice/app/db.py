from typing import Union

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def make_engine(url: Union[str, URL], *, connect_args: dict | None = None) -> Engine:
    """Build an engine; SQLite gets thread-sharing and, in memory, a single pool slot."""

    parsed = make_url(url)
    args = dict(connect_args or {})
    kwargs = {"pool_pre_ping": True}
    if parsed.drivername.startswith("sqlite"):
        # SQLite requires check_same_thread=False for usage across threads
        args.setdefault("check_same_thread", False)
        if parsed.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(parsed, connect_args=args, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
