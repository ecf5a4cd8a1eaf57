"""
Unit tests -- translator handlers against a hand-built schema catalog.
"""
from datetime import date

import pytest

from talkdata.copilot.handlers import (
    LargestTransactionHandler,
    ListAllHandler,
    RecipientTotalHandler,
    extract_recipient,
)
from talkdata.copilot.translation import Translated
from talkdata.db.schema import ColumnInfo, SchemaCatalog
from talkdata.governance.semantic_loader import load_banking_model

TODAY = date(2024, 12, 10)


def _cols(*names):
    return tuple(ColumnInfo(name=n, type="TEXT") for n in names)


SCHEMA = SchemaCatalog(tables={
    "transactions": _cols(
        "transaction_id", "account_id", "date", "type", "category",
        "merchant", "description", "amount", "related_account_id",
    ),
    "beneficiaries": _cols("beneficiary_id", "name", "account_number", "relationship", "added_on"),
    "transfers": _cols("transfer_id", "from_account_id", "to_beneficiary_id", "date", "amount", "status", "note"),
    "accounts": _cols("account_id", "customer_id", "account_number", "balance", "opened_date"),
    "loans": _cols("loan_id", "customer_id", "principal_amount"),
})


@pytest.fixture(scope="module")
def model():
    return load_banking_model()


@pytest.fixture
def largest(model):
    return LargestTransactionHandler(model, clock=lambda: TODAY)


@pytest.fixture
def listing(model):
    return ListAllHandler(model, row_limit=200)


def _recipient(model, matches):
    calls = []

    def lookup(name):
        calls.append(name)
        return matches

    return RecipientTotalHandler(model, lookup, clock=lambda: TODAY), calls


# ── Largest transaction ─────────────────────────────────

@pytest.mark.parametrize("question", [
    "What was my biggest transaction last month?",
    "largest transaction",
    "Tell me the LARGEST TRANSACTION please",
])
def test_largest_transaction(largest, question):
    result = largest.try_translate(question, SCHEMA)
    assert isinstance(result, Translated)
    assert "ORDER BY amount DESC LIMIT 1" in result.sql
    assert "date >= :start_date AND date < :end_date" in result.sql
    assert result.params == {"start_date": "2024-11-01", "end_date": "2024-12-01"}
    assert result.reason == "biggest transaction last month"


def test_largest_transaction_other_period(largest):
    result = largest.try_translate("biggest transaction in 2023", SCHEMA)
    assert result.params == {"start_date": "2023-01-01", "end_date": "2024-01-01"}


def test_largest_transaction_selects_display_columns(largest):
    result = largest.try_translate("biggest transaction", SCHEMA)
    assert result.sql.startswith("SELECT merchant, category, amount, date FROM transactions")


def test_largest_transaction_needs_table(largest):
    assert largest.try_translate("biggest transaction", SchemaCatalog(tables={})) is None


def test_largest_transaction_ignores_other_questions(largest):
    assert largest.try_translate("show all transactions", SCHEMA) is None


# ── Recipient total ─────────────────────────────────────

def test_extract_recipient():
    name, window = extract_recipient("How much did I send to John last year?", TODAY)
    assert name == "john"
    assert window.start == date(2023, 12, 10)


def test_extract_recipient_uses_last_to():
    name, _ = extract_recipient("how much did i have to pay to david lee in 2024", TODAY)
    assert name == "david lee"


@pytest.mark.parametrize("question", [
    "How much did I send to John",
    "How much did I send to ; drop table x last year",
])
def test_extract_recipient_rejects(question):
    assert extract_recipient(question, TODAY) is None


def test_recipient_total_single_match(model):
    handler, calls = _recipient(model, [(1, "John Smith")])
    result = handler.try_translate("How much did I send to John last year?", SCHEMA)
    assert isinstance(result, Translated)
    assert calls == ["john"]
    assert "SUM(amount) AS total_sent" in result.sql
    assert "to_beneficiary_id = :beneficiary_id" in result.sql
    assert result.params == {
        "beneficiary_id": 1,
        "start_date": "2023-12-10",
        "end_date": "2024-12-11",
    }
    assert "John Smith" in result.reason


def test_recipient_name_never_in_sql(model):
    handler, _ = _recipient(model, [(7, "O'Brien")])
    result = handler.try_translate("total money sent to o'brien in 2024", SCHEMA)
    assert "brien" not in result.sql.lower()
    assert result.params["beneficiary_id"] == 7


@pytest.mark.parametrize("matches", [[], [(1, "John Smith"), (4, "Johnny Cash")]])
def test_recipient_total_falls_through(model, matches):
    handler, _ = _recipient(model, matches)
    assert handler.try_translate("How much did I send to John last year?", SCHEMA) is None


def test_recipient_total_needs_trigger(model):
    handler, calls = _recipient(model, [(1, "John Smith")])
    assert handler.try_translate("I sent money to John last year", SCHEMA) is None
    assert calls == []


# ── List all ────────────────────────────────────────────

@pytest.mark.parametrize("question", [
    "Show all transactions",
    "list all transactions",
    "show me all my transactions",
])
def test_list_all_transactions(listing, question):
    result = listing.try_translate(question, SCHEMA)
    assert isinstance(result, Translated)
    assert result.sql.endswith("ORDER BY date DESC LIMIT 200")
    assert "transaction_id, account_id, date" in result.sql
    assert result.params == {}


def test_list_all_row_cap_never_exceeds_model(model):
    handler = ListAllHandler(model, row_limit=10_000)
    result = handler.try_translate("list all transactions", SCHEMA)
    assert result.sql.endswith(f"LIMIT {model.security.max_rows}")


def test_list_all_other_table(listing):
    result = listing.try_translate("list all accounts", SCHEMA)
    assert "FROM accounts ORDER BY opened_date DESC" in result.sql


def test_list_all_falls_back_to_first_column(listing):
    result = listing.try_translate("list all loans", SCHEMA)
    assert "ORDER BY loan_id DESC" in result.sql


def test_list_all_unknown_table(listing):
    assert listing.try_translate("list all secrets", SCHEMA) is None
    assert listing.try_translate("list all cards", SCHEMA) is None  # not in catalog
