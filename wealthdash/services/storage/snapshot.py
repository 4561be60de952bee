"""
Snapshot Codec

The persisted document layout:

    {
      "accounts":      [{"id", "name", "type", "currency", "balance"}],
      "transactions":  [{"id", "date", "description", "category", "amount"}],
      "exchangeRates": {"HKD": 1, "USD": 7.82, ...},
      "lastUpdated":   "2024-05-01T12:00:00"
    }

Money is written as JSON numbers and read back as Decimal, exactly as
written.

CRITICAL: Decoding never raises. The blob may be hand-edited, truncated
or written by an older build; every field falls back to its default on
its own, and every enum goes through the shared coercers.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import structlog

from wealthdash.models.ledger import (
    Account,
    PersistedSnapshot,
    Transaction,
    new_account_id,
    new_transaction_id,
)
from wealthdash.validation.coercion import (
    coerce_account_type,
    coerce_balance,
    coerce_category,
    coerce_currency,
    coerce_text,
    normalize_date,
    resolve_rate_table,
)


logger = structlog.get_logger(__name__)


def _money(value: Decimal) -> Any:
    # Integral amounts stay ints so the file reads naturally
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def encode_snapshot(snapshot: PersistedSnapshot) -> str:
    """Serialize a snapshot to the persisted JSON document."""
    payload = {
        "accounts": [
            {
                "id": account.id,
                "name": account.name,
                "type": account.type.value,
                "currency": account.currency.value,
                "balance": _money(account.balance),
            }
            for account in snapshot.accounts
        ],
        "transactions": [
            {
                "id": tx.id,
                "date": tx.date,
                "description": tx.description,
                "category": tx.category.value,
                "amount": _money(tx.amount),
            }
            for tx in snapshot.transactions
        ],
        "exchangeRates": {
            code: _money(rate) for code, rate in snapshot.exchange_rates.items()
        },
        "lastUpdated": snapshot.last_updated.isoformat(),
    }
    return json.dumps(payload, ensure_ascii=False)


def _unique_id(raw: Any, seen: set[str], mint) -> str:
    candidate = str(raw).strip() if isinstance(raw, (str, int)) else ""
    if not candidate or candidate in seen:
        candidate = mint()
    seen.add(candidate)
    return candidate


def _decode_accounts(raw: Any) -> list[Account]:
    if not isinstance(raw, list):
        return []

    accounts = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        accounts.append(Account(
            id=_unique_id(item.get("id"), seen, new_account_id),
            name=coerce_text(item.get("name"), "Unknown Asset"),
            type=coerce_account_type(item.get("type")),
            currency=coerce_currency(item.get("currency")),
            balance=coerce_balance(item.get("balance")),
        ))
    return accounts


def _decode_transactions(raw: Any) -> list[Transaction]:
    if not isinstance(raw, list):
        return []

    transactions = []
    seen: set[str] = set()
    for item in raw:
        if not isinstance(item, dict):
            continue
        transactions.append(Transaction(
            id=_unique_id(item.get("id"), seen, new_transaction_id),
            date=normalize_date(item.get("date")),
            description=coerce_text(item.get("description"), "Unknown", max_length=500),
            category=coerce_category(item.get("category")),
            amount=coerce_balance(item.get("amount")),
        ))
    return transactions


def _decode_timestamp(raw: Any) -> datetime:
    if isinstance(raw, str):
        try:
            return datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.utcnow()


def decode_snapshot(blob: Optional[str]) -> PersistedSnapshot:
    """
    Restore a snapshot from its persisted JSON.

    A missing, unparseable or non-object blob yields the default
    snapshot: no accounts, no transactions, default rates.
    """
    if not blob or not blob.strip():
        return PersistedSnapshot()

    try:
        data = json.loads(blob, parse_float=Decimal)
    except (ValueError, RecursionError) as e:
        logger.warning("snapshot_unreadable", error=str(e))
        return PersistedSnapshot()

    if not isinstance(data, dict):
        logger.warning("snapshot_unreadable", error="top level is not an object")
        return PersistedSnapshot()

    return PersistedSnapshot(
        accounts=_decode_accounts(data.get("accounts")),
        transactions=_decode_transactions(data.get("transactions")),
        exchange_rates=resolve_rate_table(data.get("exchangeRates")),
        last_updated=_decode_timestamp(data.get("lastUpdated")),
    )
