"""
Deterministic statement guard (non-LLM).

The final gate before any SQL reaches the executor.  It operates purely on
the SQL text and the banking model's security rules.

Checks performed:
  1. SQL must contain a statement (not empty, not only comments)
  2. Exactly one statement -- a separator outside string literals followed
     by more SQL is rejected (a single trailing ';' is fine)
     Literals must use standard quoting ('' not \\'), or the split can't be trusted
  3. Classification by leading keyword: read-only verbs vs mutating
  4. Mutating statements are rejected when the model runs in read-only mode

Only ``StatementGuard.validate`` creates ``ValidatedStatement`` objects, and
the executor accepts nothing else.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

import sqlparse
from sqlparse import tokens as T

from talkdata.governance.semantic_loader import SecurityRules
from talkdata.core.logging import get_logger

logger = get_logger(__name__)

READ_ONLY = "read_only"
MUTATING = "mutating"

_LEADING_WORD = re.compile(r"^\s*\(*\s*([A-Za-z]+)")

# SQLite and standard Postgres strings: a quote inside is doubled, never backslashed
_STD_STRING = re.compile(r"'(?:[^']|'')*'", re.DOTALL)
_STD_QUOTED_NAME = re.compile(r'"(?:[^"]|"")*"', re.DOTALL)


@dataclass(frozen=True)
class ValidatedStatement:
    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    kind: str = READ_ONLY

    @property
    def is_read_only(self) -> bool:
        return self.kind == READ_ONLY


@dataclass(frozen=True)
class Rejection:
    reason: str


def _strip_comments(sql: str) -> str:
    return sqlparse.format(sql, strip_comments=True).strip()


def split_statements(sql: str) -> list[str]:
    """Split *sql* into statements, ignoring comment-only fragments."""
    return [s for s in sqlparse.split(sql) if _strip_comments(s).strip(" ;\n\t")]


def nonstandard_literal(sql: str) -> str | None:
    """Return the first quoted token sqlparse lexed with backslash escapes.

    sqlparse accepts `\\'` as an escaped quote; the target databases end the
    string there, so any `;` after it would separate real statements.
    """
    for statement in sqlparse.parse(sql):
        for tok in statement.flatten():
            if tok.ttype in T.String.Single:
                if not _STD_STRING.fullmatch(tok.value):
                    return tok.value
            elif tok.value.startswith('"') and (tok.ttype in T.String.Symbol or tok.ttype in T.Name):
                if not _STD_QUOTED_NAME.fullmatch(tok.value):
                    return tok.value
    return None


def leading_keyword(sql: str) -> str:
    m = _LEADING_WORD.match(_strip_comments(sql))
    return m.group(1).lower() if m else ""


class StatementGuard:
    """Validates candidate SQL against the security rules."""

    def __init__(self, rules: SecurityRules | None = None, allow_mutations: bool | None = None):
        self.rules = rules or SecurityRules()
        self.read_only_verbs = frozenset(self.rules.read_only_verbs)
        self.allow_mutations = (
            self.rules.allow_mutations if allow_mutations is None else allow_mutations
        )

    def classify(self, sql: str) -> str:
        return READ_ONLY if leading_keyword(sql) in self.read_only_verbs else MUTATING

    def validate(self, sql: str, params: dict[str, Any] | None = None) -> ValidatedStatement | Rejection:
        if not sql or not _strip_comments(sql).strip(" ;\n\t"):
            return self._reject("Empty SQL statement.")

        if nonstandard_literal(sql) is not None:
            return self._reject(
                "Backslash-escaped quotes are not allowed in string literals (use '' instead)."
            )

        statements = split_statements(sql)
        if len(statements) > 1:
            return self._reject(
                "Multi-statement SQL is not allowed (found ';' followed by another statement)."
            )

        statement = statements[0].strip()
        kind = self.classify(statement)
        if kind == MUTATING:
            verb = leading_keyword(statement).upper() or "UNKNOWN"
            if not self.allow_mutations:
                return self._reject(f"Read-only mode: '{verb}' statements are not allowed.")
            logger.warning("Mutating statement accepted: %s", verb)

        return ValidatedStatement(sql=statement, params=dict(params or {}), kind=kind)

    @staticmethod
    def _reject(reason: str) -> Rejection:
        logger.warning("Statement rejected: %s", reason)
        return Rejection(reason=reason)
