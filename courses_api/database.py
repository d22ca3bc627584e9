"""Database engine and helpers.

This module builds the SQLModel/SQLAlchemy engine from a connection
string and provides the request-scoped session dependency. The engine is
created once by the application factory and kept on `app.state`; nothing
here holds a module-level connection.
"""

from typing import Iterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

# imported for its side effect of registering the tables on SQLModel.metadata
from . import models  # noqa: F401


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _register_sqlite_functions(dbapi_connection, connection_record):
    """Replace SQLite's ASCII-only `lower()` with a Unicode-aware one.

    Case-insensitive filters (`ilike`) compile to `lower(x) LIKE lower(y)`
    on SQLite, so this makes them fold "Über" and "МИНУТ" as well.
    """
    dbapi_connection.create_function("lower", 1, _unicode_lower, deterministic=True)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for `url`.

    SQLite connections are shared across FastAPI's worker threads, so the
    same-thread check is disabled. An in-memory SQLite database only lives
    as long as its connection, hence the single static connection pool.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)
        event.listen(engine, "connect", _register_sqlite_functions)
        return engine
    return create_engine(url, echo=echo)


def create_db_and_tables(engine: Engine) -> None:
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; existing tables are left
    untouched.
    """
    SQLModel.metadata.create_all(engine)


def get_session(request: Request) -> Iterator[Session]:
    """Yield a database `Session` for FastAPI dependency injection.

    The session is bound to the engine the running application was built
    with and is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
