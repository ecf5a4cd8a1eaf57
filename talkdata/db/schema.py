"""
Schema catalog -- live enumeration of user tables and their columns.

The catalog grounds translation (handlers only emit identifiers that
appear here) and backs the ``GET /schema`` discovery endpoint.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from talkdata.core.errors import StorageError
from talkdata.core.logging import get_logger
from talkdata.db.cache import CatalogCache
from talkdata.db.connection import Database

logger = get_logger(__name__)

_INTERNAL_PREFIXES = ("sqlite_",)


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type: str


@dataclass(frozen=True)
class SchemaCatalog:
    """Table name -> ordered column descriptors.  Treat as read-only."""

    tables: dict[str, tuple[ColumnInfo, ...]] = field(default_factory=dict)

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def columns(self, table: str) -> tuple[ColumnInfo, ...]:
        return self.tables.get(table, ())

    def column_names(self, table: str) -> list[str]:
        return [c.name for c in self.columns(table)]

    def has_columns(self, table: str, *names: str) -> bool:
        present = set(self.column_names(table))
        return self.has_table(table) and all(n in present for n in names)

    def table_names(self) -> list[str]:
        return list(self.tables)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Wire shape for ``GET /schema``."""
        return {
            table: [{"name": c.name, "type": c.type} for c in cols]
            for table, cols in self.tables.items()
        }


def load_schema(database: Database) -> SchemaCatalog:
    """Introspect *database*.

    Raises
    ------
    StorageError
        If the database is unreachable or introspection fails.
    """
    try:
        inspector = inspect(database.engine)
        tables: dict[str, tuple[ColumnInfo, ...]] = {}
        for name in inspector.get_table_names():
            if name.startswith(_INTERNAL_PREFIXES):
                continue
            tables[name] = tuple(
                ColumnInfo(name=col["name"], type=str(col["type"]))
                for col in inspector.get_columns(name)
            )
    except SQLAlchemyError as exc:
        logger.exception("Schema introspection failed")
        raise StorageError(f"Could not load schema: {exc}") from exc

    logger.info("Schema loaded: %d tables", len(tables))
    return SchemaCatalog(tables=tables)


class SchemaCatalogLoader:
    """Loads the catalog, optionally through a TTL cache."""

    def __init__(self, database: Database, ttl_seconds: float = 0.0):
        self.database = database
        self.cache = CatalogCache(ttl=ttl_seconds)

    def load(self) -> SchemaCatalog:
        cached = self.cache.get()
        if cached is not None:
            return cached
        catalog = load_schema(self.database)
        self.cache.put(catalog)
        return catalog

    def invalidate(self) -> int:
        return self.cache.invalidate()
