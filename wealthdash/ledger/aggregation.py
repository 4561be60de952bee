"""
Aggregation Engine

Pure functions from (accounts, rates, base currency) to dashboard figures.

Bucketing rules, applied after converting each balance to the base:
- Investment with a positive balance   -> investments
- Any negative balance                 -> liabilities (as a magnitude)
- Any other non-negative balance       -> cash (anchor or foreign bucket)
- A zero-balance investment contributes nothing

net_worth = cash + investments - liabilities

Converted values are summed in sorted order so the totals do not depend
on the order the accounts are held in.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping

from wealthdash.ledger.conversion import CurrencyLike, fallback_currencies, to_base
from wealthdash.models.ledger import (
    ANCHOR_CURRENCY,
    DISPLAY_SYMBOLS,
    Account,
    AccountType,
    AssetSlice,
    CategorySpend,
    Currency,
    ExpenseCategory,
    Totals,
    Transaction,
)
from wealthdash.validation.coercion import coerce_currency


ZERO = Decimal("0")


def _sum(values: Iterable[Decimal]) -> Decimal:
    return sum(sorted(values), ZERO)


def compute_totals(
    accounts: Iterable[Account],
    rates: Mapping[str, object],
    base_currency: CurrencyLike = ANCHOR_CURRENCY,
) -> Totals:
    """Compute net worth and its buckets in the base currency."""
    base = coerce_currency(base_currency)
    accounts = list(accounts)

    anchor_cash: list[Decimal] = []
    foreign_cash: list[Decimal] = []
    investments: list[Decimal] = []
    liabilities: list[Decimal] = []

    for account in accounts:
        value = to_base(account.balance, account.currency, rates, base)

        if account.balance < 0:
            liabilities.append(abs(value))
        elif account.type == AccountType.INVESTMENT:
            if account.balance > 0:
                investments.append(value)
        elif account.currency == ANCHOR_CURRENCY:
            anchor_cash.append(value)
        else:
            foreign_cash.append(value)

    anchor_total = _sum(anchor_cash)
    foreign_total = _sum(foreign_cash)
    invest_total = _sum(investments)
    liability_total = _sum(liabilities)

    return Totals(
        base_currency=base,
        net_worth=anchor_total + foreign_total + invest_total - liability_total,
        anchor_cash=anchor_total,
        foreign_cash=foreign_total,
        investments=invest_total,
        liabilities=liability_total,
        display_symbol=DISPLAY_SYMBOLS.get(base, base.value),
        fallback_currencies=fallback_currencies(_rates_used(accounts, base), rates),
    )


def _rates_used(accounts: list[Account], base: Currency) -> list[Currency]:
    # Same-currency conversion short-circuits and reads no rate
    used: list[Currency] = []
    for account in accounts:
        if account.currency != base:
            used.extend([account.currency, base])
    return used


def total_spent(transactions: Iterable[Transaction]) -> Decimal:
    """Sum of all outflows, as a positive number."""
    return _sum(-t.amount for t in transactions if t.amount < 0)


def spending_by_category(transactions: Iterable[Transaction]) -> list[CategorySpend]:
    """
    Break outflows down by category.

    Inflows are ignored. Sorted by value, largest first.
    """
    per_category: dict[ExpenseCategory, list[Decimal]] = defaultdict(list)
    for tx in transactions:
        if tx.amount < 0:
            per_category[tx.category].append(-tx.amount)

    sums = {category: _sum(values) for category, values in per_category.items()}
    total = _sum(sums.values())
    if total == 0:
        return []

    breakdown = [
        CategorySpend(
            category=category,
            value=value,
            percent=float(value / total),
        )
        for category, value in sums.items()
    ]
    breakdown.sort(key=lambda c: (-c.value, c.category.value))
    return breakdown


def asset_distribution(
    accounts: Iterable[Account],
    rates: Mapping[str, object],
    base_currency: CurrencyLike = ANCHOR_CURRENCY,
) -> list[AssetSlice]:
    """Accounts with a positive converted value and their share of the whole."""
    base = coerce_currency(base_currency)

    held = []
    for account in accounts:
        value = to_base(account.balance, account.currency, rates, base)
        if value > 0:
            held.append((account, value))

    total = _sum(value for _, value in held)
    if total == 0:
        return []

    slices = [
        AssetSlice(
            account_id=account.id,
            name=account.name,
            value=value,
            original_value=account.balance,
            currency=account.currency,
            type=account.type,
            percent=min(1.0, float(value / total)),
        )
        for account, value in held
    ]
    slices.sort(key=lambda s: (-s.value, s.name))
    return slices
