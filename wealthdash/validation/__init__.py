"""
Validation Package

Coercion of lenient input onto strict models, and review checks for
import previews.
"""

from wealthdash.validation.coercion import (
    coerce_account_type,
    coerce_balance,
    coerce_category,
    coerce_currency,
    coerce_rate,
    coerce_text,
    normalize_date,
    parse_amount,
    parse_decimal_strict,
    resolve_rate_table,
    valid_rate_entries,
)
from wealthdash.validation.validator import ImportValidator

__all__ = [
    "coerce_account_type",
    "coerce_balance",
    "coerce_category",
    "coerce_currency",
    "coerce_rate",
    "coerce_text",
    "normalize_date",
    "parse_amount",
    "parse_decimal_strict",
    "resolve_rate_table",
    "valid_rate_entries",
    "ImportValidator",
]
