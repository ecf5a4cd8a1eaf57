"""
Shared fixtures -- a seeded SQLite banking database in a temp directory.

The seed follows the demo dataset with November rent lowered to 900.00, so
950.00 on 2024-11-05 is the largest transaction of November 2024, and
"John Smith" is the only beneficiary matching "john" (transfers of 400.00
and 1200.00 in late 2024).
"""
from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from talkdata.api.main import create_app
from talkdata.copilot.service import build_service
from talkdata.copilot.translator import build_translator
from talkdata.core.config import Settings
from talkdata.db.connection import Database
from talkdata.governance.semantic_loader import load_banking_model

FIXED_TODAY = date(2024, 12, 10)

_DDL = [
    """CREATE TABLE customers (
        customer_id INTEGER PRIMARY KEY AUTOINCREMENT,
        first_name TEXT, last_name TEXT, email TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP)""",
    """CREATE TABLE accounts (
        account_id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER, account_number TEXT UNIQUE, account_type TEXT,
        status TEXT, balance NUMERIC, currency TEXT, opened_date DATE)""",
    """CREATE TABLE transactions (
        transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
        account_id INTEGER, date DATE, type TEXT, category TEXT, merchant TEXT,
        description TEXT, amount NUMERIC, related_account_id INTEGER)""",
    """CREATE TABLE beneficiaries (
        beneficiary_id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT, account_number TEXT, relationship TEXT, added_on DATE)""",
    """CREATE TABLE transfers (
        transfer_id INTEGER PRIMARY KEY AUTOINCREMENT,
        from_account_id INTEGER, to_beneficiary_id INTEGER, date DATE,
        amount NUMERIC, status TEXT, note TEXT)""",
]

_CUSTOMERS = [
    ("Alice", "Brown", "alice@example.com"),
    ("John", "Smith", "john@example.com"),
    ("David", "Lee", "david@example.com"),
]

_ACCOUNTS = [
    (1, "AC1001", "savings", "active", 5400.00, "USD", "2023-01-01"),
    (1, "AC1002", "checking", "active", 2500.50, "USD", "2023-04-12"),
    (2, "AC2001", "credit", "active", -1200.75, "USD", "2023-08-10"),
    (3, "AC3001", "savings", "active", 3200.00, "USD", "2024-02-15"),
]

TRANSACTIONS = [
    (1, "2024-01-05", "debit", "groceries", "Market", "Groceries", 95.20),
    (1, "2024-02-01", "credit", "salary", "ABC Corp", "Monthly salary", 2500.00),
    (1, "2024-06-12", "debit", "travel", "Airline", "Flight to Lahore", 320.00),
    (1, "2024-10-01", "credit", "salary", "ABC Corp", "Monthly salary", 2500.00),
    (1, "2024-10-10", "debit", "utilities", "Electric Co", "Electric bill", 300.00),
    (2, "2024-11-01", "debit", "rent", "Landlord", "Monthly rent", 900.00),
    (3, "2024-11-05", "debit", "travel", "Airline", "Flight to Dubai", 950.00),
    (1, "2024-11-12", "debit", "shopping", "Nike Store", "Shoes purchase", 250.00),
    (1, "2024-11-22", "debit", "dining", "Domino's", "Dinner", 75.00),
    (1, "2024-12-02", "debit", "groceries", "Supermarket A", "Grocery refill", 100.00),
    (3, "2025-01-10", "debit", "utilities", "Water Board", "Water bill", 45.00),
]

_BENEFICIARIES = [
    ("John Smith", "9988223344", "Friend", "2023-04-01"),
    ("Alice Brown", "8899776611", "Family", "2023-06-12"),
    ("David Lee", "7766554433", "Business", "2024-01-20"),
]

_TRANSFERS = [
    (2, 1, "2024-09-15", 400.00, "Completed", "Rent contribution"),
    (1, 2, "2024-10-08", 700.00, "Completed", "Family support"),
    (3, 3, "2024-10-30", 950.00, "Completed", "Business payment"),
    (2, 1, "2024-11-05", 1200.00, "Completed", "Loan repayment"),
    (2, 1, "2023-06-01", 5000.00, "Completed", "Outside the trailing year"),
]


def seed(db: Database) -> None:
    with db.engine.begin() as conn:
        for ddl in _DDL:
            conn.exec_driver_sql(ddl)
        conn.exec_driver_sql(
            "INSERT INTO customers (first_name, last_name, email) VALUES (?, ?, ?)", _CUSTOMERS
        )
        conn.exec_driver_sql(
            "INSERT INTO accounts (customer_id, account_number, account_type, status, balance, "
            "currency, opened_date) VALUES (?, ?, ?, ?, ?, ?, ?)",
            _ACCOUNTS,
        )
        conn.exec_driver_sql(
            "INSERT INTO transactions (account_id, date, type, category, merchant, description, "
            "amount) VALUES (?, ?, ?, ?, ?, ?, ?)",
            TRANSACTIONS,
        )
        conn.exec_driver_sql(
            "INSERT INTO beneficiaries (name, account_number, relationship, added_on) "
            "VALUES (?, ?, ?, ?)",
            _BENEFICIARIES,
        )
        conn.exec_driver_sql(
            "INSERT INTO transfers (from_account_id, to_beneficiary_id, date, amount, status, note) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            _TRANSFERS,
        )


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'banking.db'}")
    seed(db)
    yield db
    db.dispose()


@pytest.fixture
def settings():
    return Settings(llm_provider="mock", sql_row_limit=200, schema_cache_ttl_seconds=0)


@pytest.fixture
def model():
    return load_banking_model()


@pytest.fixture
def service(database, settings, model):
    translator = build_translator(model, database=database, settings=settings, clock=lambda: FIXED_TODAY)
    return build_service(database, settings=settings, model=model, translator=translator)


@pytest.fixture
def client(service):
    return TestClient(create_app(service=service))
