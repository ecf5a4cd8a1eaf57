"""
Query audit log -- records every translated question in ``audit_logs``.

Writes are best-effort: ``AuditRecorder.record`` swallows every failure so
an unavailable or locked audit table never fails or delays a request.
The table is created on demand via ``ensure_table()``.
"""
from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    func,
    insert,
)

from talkdata.core.logging import get_logger
from talkdata.db.connection import Database

logger = get_logger(__name__)

# table_name values -- keeps reads, writes and rejected attempts apart
KIND_QUERY = "queries"
KIND_MUTATION = "mutations"
KIND_REJECTED = "rejected"

metadata = MetaData()

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("log_id", Integer, primary_key=True, autoincrement=True),
    Column("event", Text),
    Column("table_name", Text),
    Column("row_id", Integer, nullable=True),
    Column("timestamp", DateTime, server_default=func.current_timestamp()),
)


class AuditRecorder:
    """Append-only writer for ``audit_logs``."""

    def __init__(self, database: Database):
        self.database = database

    def ensure_table(self) -> None:
        """Create the audit table if it doesn't exist."""
        metadata.create_all(self.database.engine, tables=[audit_logs], checkfirst=True)
        logger.info("Audit table '%s' ensured", audit_logs.name)

    def record(self, question: str, kind: str = KIND_QUERY) -> None:
        """Insert one audit row; never raises."""
        try:
            with self.database.engine.begin() as conn:
                conn.execute(
                    insert(audit_logs).values(event=question, table_name=kind, row_id=None)
                )
            logger.debug("Audit recorded: kind=%s question=%s", kind, question[:80])
        except Exception:
            logger.exception("Failed to write audit entry -- continuing without it")
