"""
Translator handlers -- one pattern + SQL template each.

A handler looks at the lower-cased question and the live schema catalog and
returns a ``TranslationResult`` when it recognises the question, or ``None``
so the translator can try the next one.

SQL text is assembled only from banking-model identifiers that the catalog
confirms exist.  Anything derived from the question (dates, recipient ids)
travels as a bound parameter.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Callable, Protocol

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from talkdata.copilot.periods import DateWindow, find_period, period_pattern, previous_month
from talkdata.copilot.translation import Translated, TranslationResult
from talkdata.core.logging import get_logger
from talkdata.db.connection import Database
from talkdata.db.schema import SchemaCatalog
from talkdata.governance.semantic_loader import BankingModel, RecipientSource

logger = get_logger(__name__)

Clock = Callable[[], date]

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Handler(Protocol):
    name: str

    def try_translate(self, question: str, schema: SchemaCatalog) -> TranslationResult | None:
        ...


# ── 1. Largest transaction in a period ───────────────────

_LARGEST_RE = re.compile(
    r"\b(?:biggest|largest|highest|most\s+expensive)\s+(?:transaction|payment|purchase|spend)\b"
)


class LargestTransactionHandler:
    """'What was my biggest transaction last month?'"""

    name = "largest_transaction"

    def __init__(self, model: BankingModel, clock: Clock):
        self.model = model
        self.clock = clock

    def try_translate(self, question: str, schema: SchemaCatalog) -> TranslationResult | None:
        q = question.lower()
        if "biggest transaction" not in q and "largest transaction" not in q and not _LARGEST_RE.search(q):
            return None

        src = self.model.transactions
        if not schema.has_columns(src.table, src.amount_column, src.date_column):
            logger.info("largest_transaction: '%s' not in schema", src.table)
            return None

        today = self.clock()
        window = find_period(q, today) or previous_month(today)
        columns = [c for c in src.columns if c in schema.column_names(src.table)] or [
            src.amount_column,
            src.date_column,
        ]

        sql = (
            f"SELECT {', '.join(columns)} FROM {src.table} "
            f"WHERE {src.date_column} >= :start_date AND {src.date_column} < :end_date "
            f"ORDER BY {src.amount_column} DESC LIMIT 1"
        )
        return Translated(sql=sql, reason=f"biggest transaction {window.label}", params=window.params())


# ── 2. Total sent to a named recipient ───────────────────

_TOTAL_TRIGGER_RE = re.compile(r"\b(?:total\s+money|how\s+much|total\s+(?:amount|sent))\b")
_NAME_RE = re.compile(
    r".*\bto\s+(?P<name>[a-z][a-z0-9 .'\-]*?)\s+(?:" + period_pattern() + r")"
)
_SAFE_NAME_RE = re.compile(r"^[a-z][a-z0-9 .'\-]{0,59}$")


def extract_recipient(question: str, today: date) -> tuple[str, DateWindow] | None:
    """Pull ``(name, period)`` out of '... to NAME last year' style phrases."""
    q = question.lower()
    m = _NAME_RE.search(q)
    if not m:
        return None
    name = m.group("name").strip(" .'-")
    if not name or not _SAFE_NAME_RE.match(name):
        return None
    window = find_period(q[m.end("name"):], today)
    if window is None:
        return None
    return name, window


class RecipientDirectory:
    """Parameterised name -> id lookup against the recipients table."""

    def __init__(self, database: Database, source: RecipientSource):
        self.database = database
        self.source = source

    def find(self, name: str) -> list[tuple[int, str]]:
        escaped = name.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        src = self.source
        stmt = text(
            f"SELECT {src.id_column}, {src.name_column} FROM {src.table} "
            f"WHERE lower({src.name_column}) LIKE :pattern ESCAPE '\\'"
        )
        with self.database.connect() as conn:
            rows = conn.execute(stmt, {"pattern": f"%{escaped.lower()}%"}).fetchall()
        return [(int(r[0]), str(r[1])) for r in rows]


RecipientLookup = Callable[[str], list[tuple[int, str]]]


class RecipientTotalHandler:
    """'How much did I send to John last year?'"""

    name = "recipient_total"

    def __init__(self, model: BankingModel, lookup: RecipientLookup, clock: Clock):
        self.model = model
        self.lookup = lookup
        self.clock = clock

    def try_translate(self, question: str, schema: SchemaCatalog) -> TranslationResult | None:
        q = question.lower()
        if not _TOTAL_TRIGGER_RE.search(q):
            return None

        extracted = extract_recipient(q, self.clock())
        if extracted is None:
            return None
        name, window = extracted

        rcp, tr = self.model.recipients, self.model.transfers
        if not schema.has_columns(rcp.table, rcp.id_column, rcp.name_column):
            return None
        if not schema.has_columns(tr.table, tr.recipient_column, tr.amount_column, tr.date_column):
            return None

        try:
            matches = self.lookup(name)
        except SQLAlchemyError:
            logger.exception("Recipient lookup failed for %r", name)
            return None
        if len(matches) != 1:
            logger.info("recipient_total: %d matches for %r -- not handling", len(matches), name)
            return None

        recipient_id, recipient_name = matches[0]
        sql = (
            f"SELECT SUM({tr.amount_column}) AS total_sent FROM {tr.table} "
            f"WHERE {tr.recipient_column} = :beneficiary_id "
            f"AND {tr.date_column} >= :start_date AND {tr.date_column} < :end_date"
        )
        params = {"beneficiary_id": recipient_id, **window.params()}
        return Translated(
            sql=sql,
            reason=f"total money sent to {recipient_name} {window.label}",
            params=params,
        )


# ── 3. Bulk listing ──────────────────────────────────────

class ListAllHandler:
    """'Show all transactions' / 'list all loans'."""

    name = "list_all"

    def __init__(self, model: BankingModel, row_limit: int):
        self.model = model
        self.row_limit = min(row_limit, model.security.max_rows)
        aliases = "|".join(re.escape(a) for a in model.listing_aliases())
        self._pattern = re.compile(
            rf"\b(?:show|list|display|give)\s+(?:me\s+)?(?:all|every)\s+(?:(?:of\s+)?(?:my|the)\s+)?(?P<what>{aliases})\b"
        )

    def try_translate(self, question: str, schema: SchemaCatalog) -> TranslationResult | None:
        m = self._pattern.search(question.lower())
        if not m:
            return None

        entry = self.model.listable(m.group("what"))
        if entry is None or not schema.has_table(entry.name):
            return None

        columns = [c for c in schema.column_names(entry.name) if _IDENT_RE.match(c)]
        if not columns:
            return None
        order_col = entry.order_by if entry.order_by in columns else columns[0]

        sql = (
            f"SELECT {', '.join(columns)} FROM {entry.name} "
            f"ORDER BY {order_col} DESC LIMIT {int(self.row_limit)}"
        )
        return Translated(sql=sql, reason=f"list all {entry.name}")
