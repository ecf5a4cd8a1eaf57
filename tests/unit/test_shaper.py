"""
Unit tests -- response shaper: summaries and wire format.
"""
import pytest

from talkdata.copilot.shaper import QueryResponse, shape, summarise, to_payload
from talkdata.copilot.translation import SCHEMA_SUGGESTION, Translated, Untranslatable
from talkdata.db.executor import ExecutionError, Mutation, Rows
from talkdata.governance.statement_guard import Rejection

_TRANSLATED = Translated(
    sql="SELECT merchant, amount FROM transactions WHERE date >= :start_date",
    reason="biggest transaction last month",
    params={"start_date": "2024-11-01"},
)


def test_untranslatable_shape():
    resp = shape("asdkj", Untranslatable())
    assert resp.error == "needs further translation capability"
    assert resp.suggestion == SCHEMA_SUGGESTION
    assert resp.sql is None
    assert resp.result is None
    assert resp.summary.startswith("Error:")
    assert not resp.success


def test_rows_shape():
    rows = [{"merchant": "Airline", "amount": 950.0}]
    resp = shape("q", _TRANSLATED, execution=Rows(rows=rows))
    assert resp.sql == _TRANSLATED.sql
    assert resp.reason == "biggest transaction last month"
    assert resp.params == {"start_date": "2024-11-01"}
    assert resp.result.rows == rows
    assert resp.summary == "Found 1 result(s) (biggest transaction last month)"
    assert resp.success


def test_rejection_keeps_sql():
    resp = shape("q", _TRANSLATED, rejection=Rejection(reason="Read-only mode"))
    assert resp.error == "Read-only mode"
    assert resp.sql == _TRANSLATED.sql
    assert resp.result is None


def test_execution_error_shape():
    resp = shape("q", _TRANSLATED, execution=ExecutionError(message="no such table: x"))
    assert resp.result.error == "no such table: x"
    assert resp.error is None
    assert resp.summary == "SQL Error: no such table: x"
    assert not resp.success


def test_translated_without_execution_raises():
    with pytest.raises(ValueError):
        shape("q", _TRANSLATED)


@pytest.mark.parametrize("execution, expected", [
    (Rows(rows=[]), "No results found."),
    (Rows(rows=[{"a": 1}, {"a": 2}]), "Found 2 result(s)"),
    (Mutation(info={"rowcount": 1}), "Operation successful."),
    (ExecutionError(message="boom"), "SQL Error: boom"),
])
def test_summarise(execution, expected):
    assert summarise(execution) == expected


def test_to_payload_exactly_one_field():
    assert to_payload(Mutation(info={"rowcount": 3})).model_dump(exclude_none=True) == {
        "info": {"rowcount": 3}
    }


def test_to_wire_drops_unset_fields_but_keeps_null_values():
    resp = shape("q", _TRANSLATED, execution=Rows(rows=[{"total_sent": None}]))
    body = resp.to_wire()
    assert body["result"] == {"rows": [{"total_sent": None}]}
    assert "error" not in body
    assert "suggestion" not in body


def test_to_wire_miss_has_no_sql():
    body = shape("asdkj", Untranslatable()).to_wire()
    assert set(body) == {"query", "error", "suggestion", "summary"}


def test_empty_params_omitted():
    resp = shape("q", Translated(sql="SELECT 1", reason="r"), execution=Rows(rows=[]))
    assert resp.params is None
    assert isinstance(resp, QueryResponse)
