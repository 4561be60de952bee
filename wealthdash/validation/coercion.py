"""
Centralized Coercion

Every lenient input in the system passes through here before it is allowed
into a model:
- the persisted snapshot on load
- oracle JSON at the import boundary
- spreadsheet cells
- manual edit forms

DESIGN DECISION: One function per enum type, used uniformly. Unknown or
invalid values become a documented default instead of raising:
- Currency        -> HKD (anchor)
- AccountType     -> Bank
- ExpenseCategory -> Other

Numbers follow the dashboard's fail-safe rule: an unparseable amount
becomes 0, never an error. The one exception is parse_decimal_strict,
used where the user must be told their input is not a number.
"""

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from wealthdash.models.ledger import (
    ANCHOR_CURRENCY,
    DEFAULT_RATES,
    AccountType,
    Currency,
    ExchangeRateTable,
    ExpenseCategory,
)


ZERO = Decimal("0")

_CURRENCY_ALIASES = {
    "RMB": Currency.CNY,
    "CNH": Currency.CNY,
}

_ACCOUNT_TYPE_ALIASES = {
    "wallet": AccountType.WALLET,
    "digital wallet": AccountType.WALLET,
    "personal": AccountType.PERSONAL,
    "other": AccountType.PERSONAL,
    "personal/other": AccountType.PERSONAL,
}

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%Y%m%d",
]

_NON_NUMERIC = re.compile(r"[^0-9.]")
_NUMERIC_PREFIX = re.compile(r"\d*(?:\.\d*)?")
_DIGITS = "0123456789"


# =============================================================================
# ENUMS
# =============================================================================

def coerce_currency(value: Any, default: Currency = ANCHOR_CURRENCY) -> Currency:
    """Map any value onto a supported Currency, falling back to the anchor."""
    if isinstance(value, Currency):
        return value
    if not isinstance(value, str):
        return default

    code = value.strip().upper()
    if code in Currency.__members__:
        return Currency(code)
    return _CURRENCY_ALIASES.get(code, default)


def coerce_account_type(value: Any, default: AccountType = AccountType.BANK) -> AccountType:
    """Map any value onto an AccountType, falling back to Bank."""
    if isinstance(value, AccountType):
        return value
    if not isinstance(value, str):
        return default

    text = value.strip().lower()
    for account_type in AccountType:
        if account_type.value.lower() == text:
            return account_type
    return _ACCOUNT_TYPE_ALIASES.get(text, default)


def coerce_category(
    value: Any,
    default: ExpenseCategory = ExpenseCategory.OTHER,
) -> ExpenseCategory:
    """Map any value onto an ExpenseCategory, falling back to Other."""
    if isinstance(value, ExpenseCategory):
        return value
    if not isinstance(value, str):
        return default

    text = value.strip().lower()
    for category in ExpenseCategory:
        if category.value.lower() == text:
            return category
    return default


# =============================================================================
# NUMBERS
# =============================================================================

def _finite_or_zero(amount: Decimal) -> Decimal:
    return amount if amount.is_finite() else ZERO


def parse_amount(value: Any) -> Decimal:
    """
    Coerce a cell/field value to a Decimal amount.

    Strips every character that is not a digit or decimal point; the
    result is negative when a minus sign precedes the first digit.
    Unparseable input becomes 0.

        "HK$1,234.50" -> 1234.50
        "-$20"        -> -20
        "-"           -> 0
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return _finite_or_zero(value)
    if isinstance(value, (int, float)):
        return _finite_or_zero(Decimal(str(value)))

    text = str(value).strip()
    first_digit = next((i for i, ch in enumerate(text) if ch in _DIGITS), None)
    if first_digit is None:
        return ZERO

    negative = "-" in text[:first_digit]
    cleaned = _NON_NUMERIC.sub("", text)
    match = _NUMERIC_PREFIX.match(cleaned)
    digits = match.group(0) if match else ""
    if not digits or digits == ".":
        return ZERO

    try:
        amount = Decimal(digits)
    except InvalidOperation:
        return ZERO

    return -amount if negative else amount


def parse_decimal_strict(value: Any) -> Optional[Decimal]:
    """
    Parse a value that must be a plain number.

    Thousands separators and surrounding whitespace are tolerated;
    anything else returns None so the caller can report it.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None
    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "").replace(" ", "")
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def coerce_balance(value: Any) -> Decimal:
    """Persisted balances: numbers pass through, anything non-numeric is 0."""
    amount = parse_decimal_strict(value)
    return amount if amount is not None else ZERO


def coerce_rate(value: Any) -> Optional[Decimal]:
    """A usable exchange rate is a finite, strictly positive number."""
    rate = parse_decimal_strict(value)
    if rate is None or rate <= 0:
        return None
    return rate


# =============================================================================
# DATES & TEXT
# =============================================================================

def normalize_date(value: Any) -> str:
    """
    Normalize a transaction date to ISO format.

    Missing dates become today; unrecognized strings are kept verbatim
    rather than guessed at.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if value is None:
        return date.today().isoformat()

    text = str(value).strip()
    if not text:
        return date.today().isoformat()

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    return text


def coerce_text(value: Any, default: str, max_length: int = 200) -> str:
    """Stringify and trim free text; blank becomes the default."""
    if value is None:
        return default
    text = str(value).strip()
    return text[:max_length] if text else default


# =============================================================================
# RATE TABLES
# =============================================================================

def resolve_rate_table(
    raw: Any,
    fallback: Optional[Mapping[str, Decimal]] = None,
) -> ExchangeRateTable:
    """
    Build a complete rate table from untrusted input.

    Each supported currency takes its rate from `raw` when valid and
    otherwise from `fallback` (the defaults), entry by entry. The anchor
    always maps to 1.
    """
    table: ExchangeRateTable = dict(fallback if fallback is not None else DEFAULT_RATES)
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            if not isinstance(key, str):
                continue
            code = key.strip().upper()
            if code not in Currency.__members__:
                continue
            rate = coerce_rate(value)
            if rate is not None:
                table[code] = rate

    table[ANCHOR_CURRENCY.value] = Decimal("1")
    return table


def valid_rate_entries(raw: Any) -> ExchangeRateTable:
    """Only the valid supported entries of `raw`; used for partial merges."""
    entries: ExchangeRateTable = {}
    if not isinstance(raw, Mapping):
        return entries
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        code = key.strip().upper()
        if code not in Currency.__members__ or code == ANCHOR_CURRENCY.value:
            continue
        rate = coerce_rate(value)
        if rate is not None:
            entries[code] = rate
    return entries
