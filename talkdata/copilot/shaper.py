"""
Response shaper -- translator output + execution outcome -> ``QueryResponse``.

Rules:
  - translation miss   -> error + suggestion, no sql/result
  - guard rejection    -> error, attempted sql/reason kept for display
  - execution error    -> result.error, sql/reason kept
  - rows               -> all rows returned; summary counts them
  - mutation           -> result.info; "Operation successful."

The summary is the chat-bubble text.  Showing only the first rows of a
large result is left to the client.
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from talkdata.copilot.translation import TranslationResult, Untranslatable
from talkdata.db.executor import ExecutionError, ExecutionResult, Mutation, Rows
from talkdata.governance.statement_guard import Rejection


class ResultPayload(BaseModel):
    """Wire form of ExecutionResult: exactly one of rows / info / error."""

    rows: list[dict[str, Any]] | None = None
    info: dict[str, Any] | None = None
    error: str | None = None


class QueryResponse(BaseModel):
    query: str
    sql: str | None = None
    reason: str | None = None
    params: dict[str, Any] | None = None
    result: ResultPayload | None = None
    error: str | None = None
    suggestion: str | None = None
    summary: str = Field("", description="Chat-bubble text for the answer")

    @property
    def success(self) -> bool:
        return self.error is None and self.result is not None and self.result.error is None

    def to_wire(self) -> dict[str, Any]:
        """JSON body: unset top-level fields dropped, row values left intact."""
        body = {k: v for k, v in self.model_dump().items() if v is not None}
        if self.result is not None:
            body["result"] = {k: v for k, v in self.result.model_dump().items() if v is not None}
        return body


def to_payload(execution: ExecutionResult) -> ResultPayload:
    if isinstance(execution, Rows):
        return ResultPayload(rows=execution.rows)
    if isinstance(execution, Mutation):
        return ResultPayload(info=execution.info)
    return ResultPayload(error=execution.message)


def summarise(execution: ExecutionResult, reason: str | None = None) -> str:
    if isinstance(execution, ExecutionError):
        return f"SQL Error: {execution.message}"
    if isinstance(execution, Mutation):
        return "Operation successful."
    n = len(execution.rows)
    if n == 0:
        return "No results found."
    return f"Found {n} result(s)" + (f" ({reason})" if reason else "")


def shape(
    question: str,
    translation: TranslationResult,
    execution: ExecutionResult | None = None,
    rejection: Rejection | None = None,
) -> QueryResponse:
    if isinstance(translation, Untranslatable):
        return QueryResponse(
            query=question,
            error=translation.reason,
            suggestion=translation.suggestion,
            summary=f"Error: {translation.reason}",
        )

    base = {
        "query": question,
        "sql": translation.sql,
        "reason": translation.reason,
        "params": translation.params or None,
    }

    if rejection is not None:
        return QueryResponse(**base, error=rejection.reason, summary=f"Error: {rejection.reason}")

    if execution is None:
        raise ValueError("shape() needs an execution result for a translated question")

    return QueryResponse(
        **base,
        result=to_payload(execution),
        summary=summarise(execution, translation.reason),
    )
