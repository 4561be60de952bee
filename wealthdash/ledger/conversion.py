"""
Currency Conversion Engine

Every rate is "units of anchor (HKD) per 1 unit of currency", so any
conversion goes through the anchor in two hops:

    amount (from) -> anchor -> base

A rate that is missing, non-numeric, NaN, zero or negative is treated
as 1. That keeps the dashboard rendering with a wrong-but-finite number
instead of failing; the fallback is logged and reported through
fallback_currencies() so the UI can warn about it.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Union

import structlog

from wealthdash.models.ledger import ANCHOR_CURRENCY, Currency
from wealthdash.validation.coercion import coerce_currency, coerce_rate


logger = structlog.get_logger(__name__)

ONE = Decimal("1")

CurrencyLike = Union[Currency, str]


def has_usable_rate(currency: CurrencyLike, rates: Mapping[str, object]) -> bool:
    """True when `rates` holds a finite positive rate for the currency."""
    currency = coerce_currency(currency)
    if currency == ANCHOR_CURRENCY:
        return True
    return coerce_rate(rates.get(currency.value)) is not None


def fallback_currencies(
    currencies: Iterable[CurrencyLike],
    rates: Mapping[str, object],
) -> list[Currency]:
    """The distinct currencies that would be converted at the fallback rate of 1."""
    seen: list[Currency] = []
    for currency in currencies:
        currency = coerce_currency(currency)
        if currency not in seen and not has_usable_rate(currency, rates):
            seen.append(currency)
    return seen


def _anchor_rate(currency: Currency, rates: Mapping[str, object]) -> Decimal:
    if currency == ANCHOR_CURRENCY:
        return ONE

    rate = coerce_rate(rates.get(currency.value))
    if rate is None:
        logger.warning(
            "exchange_rate_fallback",
            currency=currency.value,
            raw_rate=str(rates.get(currency.value)),
        )
        return ONE
    return rate


def to_base(
    amount: Decimal,
    from_currency: CurrencyLike,
    rates: Mapping[str, object],
    base_currency: CurrencyLike = ANCHOR_CURRENCY,
) -> Decimal:
    """
    Convert an amount into the base currency.

    Converting a currency to itself returns the amount untouched, so a
    value already in the base currency survives repeated conversion.
    """
    source = coerce_currency(from_currency)
    target = coerce_currency(base_currency)

    if source == target:
        return amount

    in_anchor = amount * _anchor_rate(source, rates)
    if target == ANCHOR_CURRENCY:
        return in_anchor
    return in_anchor / _anchor_rate(target, rates)
