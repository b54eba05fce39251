"""Engine and session factories.

Nothing here opens a connection at import time. The app factory builds one
engine per process, keeps it on ``app.state`` and disposes it at shutdown.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

SQLITE_BUSY_TIMEOUT_SECONDS = 30

# ``Base`` is the parent class for every SQLAlchemy model defined in salonstock/models.
Base = declarative_base()


def build_engine(db_url: str) -> Engine:
    """Create the process-wide engine, with SQLite-specific tuning when needed."""

    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(db_url, pool_pre_ping=True)

    database = url.database
    in_memory = database in (None, "", ":memory:") or url.query.get("mode") == "memory"
    kwargs: dict[str, object] = {
        "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
    }
    if in_memory:
        # One shared connection so every thread sees the same in-memory database.
        kwargs["poolclass"] = StaticPool
    else:
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(db_url, **kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_SECONDS * 1000}")
        finally:
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    # Rows handed back by the ledger outlive their session, so keep their
    # loaded attributes after commit.
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db(request: Request):
    """FastAPI dependency that yields a session and guarantees cleanup."""

    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
