"""SQLAlchemy engine handle.

One ``Database`` is opened at process start (see ``open_database``) and
passed explicitly to the schema loader, executor and audit recorder.
Read-only statements run through ``readonly_connection``, which asks the
engine itself to refuse writes before the statement executes.
"""
from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url

from talkdata.core.config import get_settings
from talkdata.core.logging import get_logger

logger = get_logger(__name__)


def _engine_kwargs(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        # FastAPI runs sync endpoints on a thread pool
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


def _ensure_sqlite_dir(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database not in (None, "", ":memory:"):
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)


class Database:
    """Owns the SQLAlchemy engine for one process."""

    def __init__(self, url: str, echo: bool = False):
        _ensure_sqlite_dir(url)
        self.url = url
        self.engine: Engine = create_engine(url, echo=echo, **_engine_kwargs(url))
        logger.info("DB engine created  backend=%s", self.dialect)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def connect(self) -> Generator[Connection, None, None]:
        """Yield a plain connection (caller commits if it writes)."""
        with self.engine.connect() as conn:
            yield conn

    @contextmanager
    def readonly_connection(self, timeout_ms: int | None = None) -> Generator[Connection, None, None]:
        """Yield a connection that refuses writes.

        Postgres gets a READ ONLY transaction plus a statement timeout;
        SQLite gets ``PRAGMA query_only`` for the lifetime of the checkout.
        """
        conn = self.engine.connect()
        try:
            if self.dialect == "postgresql":
                conn.execute(text("SET TRANSACTION READ ONLY"))
                if timeout_ms:
                    conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
            elif self.dialect == "sqlite":
                conn.exec_driver_sql("PRAGMA query_only = ON")
            yield conn
        finally:
            try:
                if self.dialect == "sqlite":
                    conn.rollback()
                    conn.exec_driver_sql("PRAGMA query_only = OFF")
            finally:
                conn.close()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("DB engine disposed")


@contextmanager
def open_database(url: str | None = None) -> Generator[Database, None, None]:
    """Scoped acquisition: the engine is disposed however the block exits."""
    db = Database(url or get_settings().database_url)
    try:
        yield db
    finally:
        db.dispose()
