"""Tests for the currency conversion engine."""

from decimal import Decimal

import pytest

from wealthdash.ledger import fallback_currencies, has_usable_rate, to_base
from wealthdash.models import DEFAULT_RATES, Currency


class TestToBase:
    """Tests for to_base()."""

    @pytest.mark.parametrize("currency", list(Currency))
    def test_same_currency_is_identity(self, currency):
        """Test converting a currency to itself never touches the amount."""
        amount = Decimal("1234.56")
        assert to_base(amount, currency, DEFAULT_RATES, currency) == amount

    def test_identity_holds_even_with_broken_rate(self):
        rates = {"USD": "garbage"}
        assert to_base(Decimal("10"), "USD", rates, "USD") == Decimal("10")

    def test_foreign_to_anchor(self):
        assert to_base(Decimal("100"), Currency.CNY, DEFAULT_RATES) == Decimal("108.00")

    def test_anchor_to_foreign(self):
        result = to_base(Decimal("782"), Currency.HKD, DEFAULT_RATES, Currency.USD)
        assert result == Decimal("100")

    def test_cross_conversion_goes_through_anchor(self):
        result = to_base(Decimal("100"), Currency.USD, DEFAULT_RATES, Currency.CNY)
        assert result == Decimal("782") / Decimal("1.08")

    def test_reconverting_a_base_value_is_idempotent(self):
        """Test that a value already in the base survives another pass."""
        once = to_base(Decimal("50"), Currency.USD, DEFAULT_RATES, Currency.HKD)
        twice = to_base(once, Currency.HKD, DEFAULT_RATES, Currency.HKD)
        assert once == twice

    @pytest.mark.parametrize("bad_rate", [None, 0, -2, "abc", float("nan")])
    def test_invalid_rate_falls_back_to_one(self, bad_rate):
        rates = {"USD": bad_rate}
        assert to_base(Decimal("100"), Currency.USD, rates) == Decimal("100")

    def test_string_currency_codes(self):
        assert to_base(Decimal("1"), "usd", DEFAULT_RATES, "hkd") == Decimal("7.82")


class TestFallbackReporting:
    """Tests for fallback detection."""

    def test_anchor_always_usable(self):
        assert has_usable_rate(Currency.HKD, {}) is True

    def test_missing_rate_not_usable(self):
        assert has_usable_rate(Currency.EUR, {"USD": 7.8}) is False

    def test_fallback_currencies_are_distinct(self):
        rates = {"USD": 0}
        result = fallback_currencies(["USD", Currency.USD, "HKD", "EUR"], rates)
        assert result == [Currency.USD, Currency.EUR]

    def test_no_fallback_with_defaults(self):
        assert fallback_currencies(list(Currency), DEFAULT_RATES) == []
