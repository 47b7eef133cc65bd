"""Database bootstrap helpers."""

import re
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from syspay.common.config import settings


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""

    pass


def normalize_database_url(url: str) -> str:
    """Point bare postgres URLs at the psycopg (v3) driver."""

    url = url.strip()
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _enable_sqlite_foreign_keys(dbapi_conn, _conn_record) -> None:
    # SQLite ships with foreign key enforcement switched off per connection.
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Create an engine with pool options suited to the backend."""

    url = normalize_database_url(url)
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside a single connection.
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        engine = create_engine(url, **options)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after commit in handlers.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


# Single SQLAlchemy engine per process.
engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


UNIQUE_VIOLATION = "unique"
FOREIGN_KEY_VIOLATION = "foreign_key"
NOT_NULL_VIOLATION = "not_null"
OTHER_VIOLATION = "other"

_PG_SQLSTATES = {
    "23505": UNIQUE_VIOLATION,
    "23503": FOREIGN_KEY_VIOLATION,
    "23502": NOT_NULL_VIOLATION,
}
_PG_KEY_RE = re.compile(r"Key \(([^)]+)\)")
_SQLITE_COLUMN_RE = re.compile(r"constraint failed: ([\w.]+)")


def classify_integrity_error(exc: IntegrityError) -> tuple[str, str | None]:
    """Return `(kind, column)` for a driver-level constraint violation.

    Understands psycopg sqlstates/diagnostics and SQLite's message format;
    `column` is None when the driver does not say which column failed.
    """

    orig = exc.orig
    message = str(orig)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        kind = _PG_SQLSTATES.get(sqlstate, OTHER_VIOLATION)
        diag = getattr(orig, "diag", None)
        column = getattr(diag, "column_name", None)
        match = _PG_KEY_RE.search(message)
        if match:
            column = match.group(1).split(",")[0].strip()
        return kind, column

    lowered = message.lower()
    if "unique constraint failed" in lowered:
        kind = UNIQUE_VIOLATION
    elif "foreign key constraint failed" in lowered:
        kind = FOREIGN_KEY_VIOLATION
    elif "not null constraint failed" in lowered:
        kind = NOT_NULL_VIOLATION
    else:
        kind = OTHER_VIOLATION
    match = _SQLITE_COLUMN_RE.search(message)
    column = match.group(1).split(".")[-1] if match else None
    return kind, column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
