"""
Statement executor.

Runs guard-approved statements and normalises the outcome into one of
three result shapes.  ``QueryExecutor.execute`` never raises:
  1. Read-only statements run on a read-only connection and return ``Rows``
  2. Mutating statements run in a committed transaction and return ``Mutation``
  3. Any database failure becomes ``ExecutionError`` with the driver message
Values are converted to JSON-safe Python types (Decimal/date/datetime).
"""
from __future__ import annotations

import decimal
import datetime
from dataclasses import dataclass, field
from typing import Any, Union

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from talkdata.core.config import get_settings
from talkdata.core.logging import get_logger
from talkdata.db.connection import Database
from talkdata.governance.statement_guard import ValidatedStatement

logger = get_logger(__name__)


@dataclass(frozen=True)
class Rows:
    rows: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class Mutation:
    info: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionError:
    message: str


ExecutionResult = Union[Rows, Mutation, ExecutionError]


def _serialise_value(val: Any) -> Any:
    """Convert DB types to JSON-serialisable Python types."""
    if isinstance(val, decimal.Decimal):
        return float(val)
    if isinstance(val, (datetime.date, datetime.datetime)):
        return val.isoformat()
    if isinstance(val, datetime.timedelta):
        return str(val)
    if isinstance(val, (bytes, bytearray, memoryview)):
        return bytes(val).hex()
    return val


def _unify_numbers(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Widen ints to float in any column that also holds floats.

    SQLite returns whole NUMERIC values as int and the rest as float, so one
    ``amount`` column would otherwise mix JSON types across rows.
    """
    if not rows:
        return rows
    float_cols = {
        col for row in rows for col, val in row.items() if isinstance(val, float)
    }
    for row in rows:
        for col in float_cols:
            val = row[col]
            if isinstance(val, int) and not isinstance(val, bool):
                row[col] = float(val)
    return rows


def _error_message(exc: Exception) -> str:
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else str(exc)
    return message or exc.__class__.__name__


class QueryExecutor:
    """Executes ``ValidatedStatement`` objects against one ``Database``."""

    def __init__(self, database: Database, timeout_ms: int | None = None):
        self.database = database
        self.timeout_ms = timeout_ms if timeout_ms is not None else get_settings().query_timeout_ms

    def execute(self, statement: ValidatedStatement) -> ExecutionResult:
        if not isinstance(statement, ValidatedStatement):
            return ExecutionError(message="Refusing to execute a statement that was not validated.")

        logger.info("Executing %s SQL (%d chars)", statement.kind, len(statement.sql))
        try:
            if statement.is_read_only:
                return self._run_read(statement)
            return self._run_write(statement)
        except SQLAlchemyError as exc:
            logger.warning("SQL execution failed: %s", _error_message(exc))
            return ExecutionError(message=_error_message(exc))
        except Exception as exc:
            logger.exception("Unexpected execution failure")
            return ExecutionError(message=_error_message(exc))

    def _run_read(self, statement: ValidatedStatement) -> Rows:
        with self.database.readonly_connection(timeout_ms=self.timeout_ms) as conn:
            result = conn.execute(text(statement.sql), statement.params)
            if not result.returns_rows:
                return Rows(rows=[])
            columns = list(result.keys())
            rows = [
                {col: _serialise_value(val) for col, val in zip(columns, row)}
                for row in result.fetchall()
            ]
            rows = _unify_numbers(rows)
        logger.info("Returned %d rows", len(rows))
        return Rows(rows=rows)

    def _run_write(self, statement: ValidatedStatement) -> Mutation:
        with self.database.engine.begin() as conn:
            result = conn.execute(text(statement.sql), statement.params)
            info = {
                "rowcount": result.rowcount,
                "last_row_id": getattr(result, "lastrowid", None),
            }
        logger.warning("Mutation committed: rowcount=%s", info["rowcount"])
        return Mutation(info=info)
