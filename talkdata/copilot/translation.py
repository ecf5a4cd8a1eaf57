"""
TranslationResult -- what a translator hands to the rest of the pipeline.

Either ``Translated`` (one SQL statement plus bound parameters) or
``Untranslatable`` (why not, and where the caller could look next).
"""
from __future__ import annotations

from typing import Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from talkdata.governance.statement_guard import nonstandard_literal, split_statements

SCHEMA_SUGGESTION = "Use /schema to fetch table/column names for prompt."
NO_HANDLER_REASON = "needs further translation capability"


class Translated(BaseModel):
    """A candidate SQL statement and a short human-readable justification."""

    kind: Literal["translated"] = "translated"
    sql: str = Field(..., min_length=1, description="Exactly one SQL statement")
    reason: str = Field(..., description="e.g. 'biggest transaction last month'")
    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Values for the named placeholders in sql, e.g. {'start_date': '2024-11-01'}",
    )

    @field_validator("sql")
    @classmethod
    def _single_statement(cls, v: str) -> str:
        if len(split_statements(v)) != 1:
            raise ValueError("sql must be exactly one statement")
        if nonstandard_literal(v) is not None:
            raise ValueError("sql string literals must not use backslash-escaped quotes")
        return v


class Untranslatable(BaseModel):
    """No handler could produce SQL for the question."""

    kind: Literal["untranslatable"] = "untranslatable"
    reason: str = NO_HANDLER_REASON
    suggestion: str | None = SCHEMA_SUGGESTION


TranslationResult = Union[Translated, Untranslatable]
