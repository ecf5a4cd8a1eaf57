"""
Loads, parses, and caches the banking model YAML into strongly-typed objects.

The banking model is the single source of truth for:
  - which table holds card/account transactions and its amount/date columns
  - how recipient names resolve to ids (beneficiaries) and where transfers live
  - which tables may be bulk-listed and their chronological column
  - security rules (read-only verbs, mutation policy, row cap)

Every identifier is checked against ``_IDENT_RE`` at load time, so handlers
can place them into SQL text without further quoting.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache
from typing import Any

import yaml

_MODEL_PATH = Path(__file__).resolve().parents[2] / "semantic_layer" / "banking_model.yml"

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ModelError(ValueError):
    """The banking model file is malformed."""


def _ident(value: Any, where: str) -> str:
    if not isinstance(value, str) or not _IDENT_RE.match(value):
        raise ModelError(f"Invalid SQL identifier {value!r} in {where}")
    return value


# ── Typed domain objects ─────────────────────────────────

@dataclass(frozen=True)
class TransactionSource:
    table: str
    amount_column: str
    date_column: str
    columns: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RecipientSource:
    table: str
    id_column: str
    name_column: str


@dataclass(frozen=True)
class TransferSource:
    table: str
    recipient_column: str
    amount_column: str
    date_column: str


@dataclass(frozen=True)
class ListableTable:
    name: str
    aliases: list[str] = field(default_factory=list)
    order_by: str | None = None


@dataclass(frozen=True)
class SecurityRules:
    read_only_verbs: list[str] = field(default_factory=lambda: ["select", "pragma"])
    allow_mutations: bool = True
    max_rows: int = 200


@dataclass
class BankingModel:
    """Fully parsed banking model."""

    version: int
    transactions: TransactionSource
    recipients: RecipientSource
    transfers: TransferSource
    listing: list[ListableTable]
    security: SecurityRules

    def listable(self, phrase: str) -> ListableTable | None:
        """Resolve a user phrase ("transactions", "loan payments") to a table."""
        phrase = " ".join(phrase.lower().split())
        for entry in self.listing:
            if phrase == entry.name or phrase in entry.aliases:
                return entry
        return None

    def listing_aliases(self) -> list[str]:
        """All aliases, longest first so multi-word phrases win."""
        aliases = {a for t in self.listing for a in (t.name, *t.aliases)}
        return sorted(aliases, key=len, reverse=True)


# ── Parsing ──────────────────────────────────────────────

def _parse_transactions(raw: dict[str, Any]) -> TransactionSource:
    return TransactionSource(
        table=_ident(raw["table"], "transactions.table"),
        amount_column=_ident(raw.get("amount_column", "amount"), "transactions.amount_column"),
        date_column=_ident(raw.get("date_column", "date"), "transactions.date_column"),
        columns=[_ident(c, "transactions.columns") for c in raw.get("columns") or []],
    )


def _parse_recipients(raw: dict[str, Any]) -> RecipientSource:
    return RecipientSource(
        table=_ident(raw["table"], "recipients.table"),
        id_column=_ident(raw["id_column"], "recipients.id_column"),
        name_column=_ident(raw["name_column"], "recipients.name_column"),
    )


def _parse_transfers(raw: dict[str, Any]) -> TransferSource:
    return TransferSource(
        table=_ident(raw["table"], "transfers.table"),
        recipient_column=_ident(raw["recipient_column"], "transfers.recipient_column"),
        amount_column=_ident(raw.get("amount_column", "amount"), "transfers.amount_column"),
        date_column=_ident(raw.get("date_column", "date"), "transfers.date_column"),
    )


def _parse_listable(raw: dict[str, Any]) -> ListableTable:
    order_by = raw.get("order_by")
    return ListableTable(
        name=_ident(raw["name"], "listing.tables.name"),
        aliases=[str(a).lower() for a in raw.get("aliases") or []],
        order_by=_ident(order_by, "listing.tables.order_by") if order_by else None,
    )


def _parse_security(raw: dict[str, Any] | None) -> SecurityRules:
    if not raw:
        return SecurityRules()
    return SecurityRules(
        read_only_verbs=[v.lower() for v in raw.get("read_only_verbs", ["select", "pragma"])],
        allow_mutations=bool(raw.get("allow_mutations", True)),
        max_rows=int(raw.get("max_rows", 200)),
    )


def _parse_model(raw_yaml: dict[str, Any]) -> BankingModel:
    try:
        return BankingModel(
            version=raw_yaml.get("version", 1),
            transactions=_parse_transactions(raw_yaml["transactions"]),
            recipients=_parse_recipients(raw_yaml["recipients"]),
            transfers=_parse_transfers(raw_yaml["transfers"]),
            listing=[_parse_listable(t) for t in (raw_yaml.get("listing") or {}).get("tables", [])],
            security=_parse_security(raw_yaml.get("security")),
        )
    except KeyError as exc:
        raise ModelError(f"Banking model is missing required key {exc}") from exc


# ── Public API ───────────────────────────────────────────

def parse_banking_model(text: str) -> BankingModel:
    """Parse a banking model from YAML text."""
    return _parse_model(yaml.safe_load(text) or {})


@lru_cache
def load_banking_model(path: str | None = None) -> BankingModel:
    """Load and cache the banking model from YAML."""
    with open(path or _MODEL_PATH) as f:
        raw = yaml.safe_load(f)
    return _parse_model(raw or {})
