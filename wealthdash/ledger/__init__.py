"""
Ledger Package

The ledger store and the pure engines that derive dashboard figures
from it: currency conversion and aggregation.
"""

from wealthdash.ledger.aggregation import (
    asset_distribution,
    compute_totals,
    spending_by_category,
    total_spent,
)
from wealthdash.ledger.conversion import (
    fallback_currencies,
    has_usable_rate,
    to_base,
)
from wealthdash.ledger.store import (
    LedgerError,
    LedgerStore,
    MergeSummary,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Engines
    "asset_distribution",
    "compute_totals",
    "fallback_currencies",
    "has_usable_rate",
    "spending_by_category",
    "to_base",
    "total_spent",
    # Store
    "LedgerError",
    "LedgerStore",
    "MergeSummary",
    "NotFoundError",
    "ValidationError",
]
