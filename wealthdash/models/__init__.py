"""
Data Models Package

This package contains all Pydantic models used in WealthDash.
All data flowing through the system must conform to these schemas.
"""

from wealthdash.models.ledger import (
    ANCHOR_CURRENCY,
    DEFAULT_RATES,
    DISPLAY_SYMBOLS,
    Account,
    AccountDraft,
    AccountType,
    AssetSlice,
    CategorySpend,
    Currency,
    ExchangeRateTable,
    ExpenseCategory,
    PersistedSnapshot,
    Totals,
    Transaction,
    TransactionDraft,
)
from wealthdash.models.imports import (
    FileKind,
    ImportPreview,
    ImportSession,
    ImportState,
    ValidationIssue,
)
from wealthdash.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ANCHOR_CURRENCY",
    "DEFAULT_RATES",
    "DISPLAY_SYMBOLS",
    "Account",
    "AccountDraft",
    "AccountType",
    "AssetSlice",
    "CategorySpend",
    "Currency",
    "ExchangeRateTable",
    "ExpenseCategory",
    "PersistedSnapshot",
    "Totals",
    "Transaction",
    "TransactionDraft",
    # Import models
    "FileKind",
    "ImportPreview",
    "ImportSession",
    "ImportState",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
