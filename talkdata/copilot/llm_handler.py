"""
Language-model handler -- the translator's last resort.

Prompts a hosted model with the live schema and takes back one SQL
statement.  The call runs on a worker thread with a hard deadline; on
timeout, provider error or an empty/unusable answer the handler returns
``Untranslatable`` instead of raising.  It never touches the database:
the schema is loaded before and the statement executed after.
"""
from __future__ import annotations

import re
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable

from pydantic import ValidationError

from talkdata.copilot.translation import SCHEMA_SUGGESTION, Translated, TranslationResult, Untranslatable
from talkdata.core.logging import get_logger
from talkdata.db.schema import SchemaCatalog

logger = get_logger(__name__)

LLMCall = Callable[[str], str]

_PROMPT = """\
You are a SQL assistant for a banking database. Using ONLY the tables and
columns below, write ONE {dialect} SQL statement that answers the question.
Never emit more than one statement. Prefer SELECT. Add LIMIT {max_rows} to
row listings.

Schema:
{schema}

Question: {question}

Respond with the SQL only. No markdown, no explanation."""

_FENCE_RE = re.compile(r"^```(?:sql)?\s*|\s*```$", re.IGNORECASE)

# One shared pool: a timed-out call keeps its thread until the SDK gives up.
# Created on first use; the API lifespan shuts it down.
_POOL: ThreadPoolExecutor | None = None
_POOL_LOCK = threading.Lock()


def _pool() -> ThreadPoolExecutor:
    global _POOL
    with _POOL_LOCK:
        if _POOL is None:
            _POOL = ThreadPoolExecutor(max_workers=4, thread_name_prefix="llm")
        return _POOL


def shutdown_pool() -> None:
    """Stop the worker threads without waiting for abandoned calls."""
    global _POOL
    with _POOL_LOCK:
        pool, _POOL = _POOL, None
    if pool is not None:
        pool.shutdown(wait=False, cancel_futures=True)
        logger.info("LLM worker pool shut down")


def build_prompt(question: str, schema: SchemaCatalog, dialect: str = "SQLite", max_rows: int = 200) -> str:
    lines = [
        f"  {table}({', '.join(f'{c.name} {c.type}' for c in cols)})"
        for table, cols in schema.tables.items()
        if table != "audit_logs"
    ]
    return _PROMPT.format(
        dialect=dialect,
        max_rows=max_rows,
        schema="\n".join(lines) or "  (no tables)",
        question=question.strip(),
    )


def parse_sql(response: str) -> str:
    """Strip markdown fences and whitespace from a model answer."""
    return _FENCE_RE.sub("", response.strip()).strip()


class LLMHandler:
    name = "llm"

    def __init__(
        self,
        call: LLMCall,
        timeout: float,
        dialect: str = "SQLite",
        max_rows: int = 200,
    ):
        self.call = call
        self.timeout = timeout
        self.dialect = dialect
        self.max_rows = max_rows

    def try_translate(self, question: str, schema: SchemaCatalog) -> TranslationResult | None:
        prompt = build_prompt(question, schema, self.dialect, self.max_rows)
        future = _pool().submit(self.call, prompt)
        try:
            response = future.result(timeout=self.timeout)
        except FutureTimeout:
            future.cancel()
            logger.warning("LLM translation timed out after %.1fs", self.timeout)
            return Untranslatable(reason="language model timed out", suggestion=SCHEMA_SUGGESTION)
        except Exception as exc:
            logger.warning("LLM translation failed: %s", exc)
            return Untranslatable(reason=f"language model unavailable: {exc}", suggestion=SCHEMA_SUGGESTION)

        sql = parse_sql(response or "")
        if not sql:
            return Untranslatable(reason="language model returned no SQL", suggestion=SCHEMA_SUGGESTION)
        try:
            return Translated(sql=sql, reason="generated by language model")
        except ValidationError:
            logger.warning("LLM answer was not a single plain statement")
            return Untranslatable(
                reason="language model returned more than one statement or a backslash-escaped literal",
                suggestion=SCHEMA_SUGGESTION,
            )
