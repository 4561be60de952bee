"""
Core Data Models for WealthDash

These models define the strict schemas for all data held by the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Keep money in Decimal end to end
3. Be serializable for the persisted snapshot
4. Stay immutable once handed out by the store

DESIGN DECISION: Models are strict and frozen. Lenient input (persisted
blobs, oracle JSON, form fields) is coerced BEFORE reaching these models,
by the single coercion function for each enum in wealthdash.validation.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """
    Supported currencies.

    Rates are expressed against the anchor (HKD): "how many HKD is
    one unit of this currency worth".
    """
    HKD = "HKD"
    CNY = "CNY"
    USD = "USD"
    JPY = "JPY"
    EUR = "EUR"
    GBP = "GBP"
    AUD = "AUD"
    CAD = "CAD"
    SGD = "SGD"


class AccountType(str, Enum):
    """Kinds of account tracked on the dashboard."""
    BANK = "Bank"
    INVESTMENT = "Investment"
    WALLET = "Digital Wallet"
    PERSONAL = "Personal/Other"


class ExpenseCategory(str, Enum):
    """
    Transaction taxonomy.

    Covers both spending and inflows (Income, Transfer, Investment).
    Anything the extractor cannot place lands in OTHER.
    """
    DINING = "Dining"
    GROCERIES = "Groceries"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    TRANSFER = "Transfer"
    INCOME = "Income"
    INVESTMENT = "Investment"
    OTHER = "Other"


ANCHOR_CURRENCY = Currency.HKD

# Units of anchor (HKD) per 1 unit of each currency
DEFAULT_RATES: dict[str, Decimal] = {
    Currency.HKD.value: Decimal("1"),
    Currency.CNY.value: Decimal("1.08"),
    Currency.USD.value: Decimal("7.82"),
    Currency.JPY.value: Decimal("0.052"),
    Currency.EUR.value: Decimal("8.5"),
    Currency.GBP.value: Decimal("9.9"),
    Currency.AUD.value: Decimal("5.2"),
    Currency.CAD.value: Decimal("5.8"),
    Currency.SGD.value: Decimal("5.8"),
}

DISPLAY_SYMBOLS: dict[Currency, str] = {
    Currency.HKD: "HK$",
    Currency.CNY: "CN¥",
    Currency.USD: "US$",
    Currency.JPY: "JP¥",
    Currency.EUR: "€",
    Currency.GBP: "£",
    Currency.AUD: "A$",
    Currency.CAD: "C$",
    Currency.SGD: "S$",
}

# Rate table type: currency code -> units of anchor per 1 unit
ExchangeRateTable = dict[str, Decimal]


def new_account_id() -> str:
    return f"acc-{uuid4().hex}"


def new_transaction_id() -> str:
    return f"tx-{uuid4().hex}"


# =============================================================================
# ACCOUNTS
# =============================================================================

class AccountDraft(BaseModel):
    """
    An account that has not been committed to the ledger yet.

    Produced by the quick-add form and by every import path.
    The store assigns the id when (and only when) it inserts.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name, also the upsert key on import"
    )
    balance: Decimal = Field(
        ...,
        description="Signed balance in the account's own currency"
    )
    currency: Currency = Field(
        default=ANCHOR_CURRENCY,
        description="Currency the balance is denominated in"
    )
    type: AccountType = Field(
        default=AccountType.BANK,
        description="Account type"
    )


class Account(BaseModel):
    """
    An account held in the ledger.

    A negative balance is a liability (credit card, loan owed).
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        default_factory=new_account_id,
        min_length=1,
        description="Opaque, stable identifier unique within the store"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    type: AccountType = AccountType.BANK
    currency: Currency = ANCHOR_CURRENCY
    balance: Decimal = Decimal("0")

    @classmethod
    def from_draft(cls, draft: AccountDraft) -> "Account":
        return cls(
            name=draft.name,
            type=draft.type,
            currency=draft.currency,
            balance=draft.balance,
        )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """A transaction extracted from a statement, not yet in the ledger."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    date: str = Field(
        ...,
        description="Calendar date, ISO formatted when it could be parsed"
    )
    description: str = Field(
        default="Unknown",
        max_length=500,
    )
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: Decimal = Field(
        ...,
        description="Negative = outflow, positive = inflow"
    )


class Transaction(BaseModel):
    """
    A transaction held in the ledger.

    Immutable once created; only removed by a bulk clear or reset.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_transaction_id, min_length=1)
    date: str
    description: str = "Unknown"
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: Decimal

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "Transaction":
        return cls(
            date=draft.date,
            description=draft.description,
            category=draft.category,
            amount=draft.amount,
        )

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0


# =============================================================================
# PERSISTENCE
# =============================================================================

class PersistedSnapshot(BaseModel):
    """
    The entire persisted document.

    The snapshot is the unit of persistence: it is rewritten in full
    after every ledger mutation.
    """

    accounts: list[Account] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    exchange_rates: dict[str, Decimal] = Field(
        default_factory=lambda: dict(DEFAULT_RATES)
    )
    last_updated: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class Totals(BaseModel):
    """
    Aggregate figures, all expressed in base_currency.

    cash_by_bucket separates anchor-currency cash from foreign cash
    purely for presentation.
    """

    base_currency: Currency
    net_worth: Decimal
    anchor_cash: Decimal
    foreign_cash: Decimal
    investments: Decimal
    liabilities: Decimal
    display_symbol: str

    # Currencies whose rate was missing/invalid and silently treated as 1
    fallback_currencies: list[Currency] = Field(default_factory=list)

    @property
    def cash(self) -> Decimal:
        return self.anchor_cash + self.foreign_cash

    @property
    def cash_by_bucket(self) -> dict[str, Decimal]:
        return {
            "anchor": self.anchor_cash,
            "foreign": self.foreign_cash,
        }

    @property
    def has_rate_fallback(self) -> bool:
        return bool(self.fallback_currencies)


class CategorySpend(BaseModel):
    """One slice of the spending breakdown."""

    category: ExpenseCategory
    value: Decimal = Field(ge=0)
    percent: float = Field(ge=0.0, le=1.0)


class AssetSlice(BaseModel):
    """One account's share of the asset distribution chart."""

    account_id: str
    name: str
    value: Decimal = Field(description="Converted into the base currency")
    original_value: Decimal
    currency: Currency
    type: AccountType
    percent: float = Field(ge=0.0, le=1.0)

