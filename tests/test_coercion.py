"""Tests for lenient-input coercion."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from wealthdash.models import DEFAULT_RATES, AccountType, Currency, ExpenseCategory
from wealthdash.validation import (
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


class TestParseAmount:
    """Tests for the fail-safe numeric rule."""

    @pytest.mark.parametrize("raw, expected", [
        ("HK$1,234.50", Decimal("1234.50")),
        ("-", Decimal("0")),
        ("-$20", Decimal("-20")),
        ("(USD) 7.8", Decimal("7.8")),
        ("", Decimal("0")),
        ("abc", Decimal("0")),
        (1500, Decimal("1500")),
        (1.08, Decimal("1.08")),
        (None, Decimal("0")),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    def test_nan_becomes_zero(self):
        """Test that non-finite numbers never leak into balances."""
        assert parse_amount(float("nan")) == 0
        assert parse_amount(Decimal("Infinity")) == 0

    def test_booleans_are_not_numbers(self):
        assert parse_amount(True) == 0


class TestParseDecimalStrict:
    """Tests for strict parsing used by the edit forms."""

    def test_thousands_separators_allowed(self):
        assert parse_decimal_strict(" 12,345.67 ") == Decimal("12345.67")

    def test_text_is_rejected(self):
        assert parse_decimal_strict("HK$100") is None
        assert parse_decimal_strict("") is None
        assert parse_decimal_strict("nan") is None

    def test_coerce_balance_defaults_to_zero(self):
        assert coerce_balance("not a number") == 0
        assert coerce_balance(42) == Decimal("42")


class TestEnumCoercion:
    """Unknown enum values become documented defaults."""

    def test_currency_case_insensitive(self):
        assert coerce_currency("usd") == Currency.USD
        assert coerce_currency(" jpy ") == Currency.JPY

    def test_currency_aliases(self):
        assert coerce_currency("RMB") == Currency.CNY
        assert coerce_currency("cnh") == Currency.CNY

    def test_unknown_currency_is_anchor(self):
        assert coerce_currency("XYZ") == Currency.HKD
        assert coerce_currency(None) == Currency.HKD
        assert coerce_currency(123) == Currency.HKD

    def test_unknown_currency_with_no_default(self):
        assert coerce_currency("XYZ", default=None) is None

    def test_account_type(self):
        assert coerce_account_type("investment") == AccountType.INVESTMENT
        assert coerce_account_type("Wallet") == AccountType.WALLET
        assert coerce_account_type("Digital Wallet") == AccountType.WALLET
        assert coerce_account_type("Personal") == AccountType.PERSONAL
        assert coerce_account_type("Crypto") == AccountType.BANK

    def test_category(self):
        assert coerce_category("dining") == ExpenseCategory.DINING
        assert coerce_category("Food") == ExpenseCategory.OTHER
        assert coerce_category(None) == ExpenseCategory.OTHER


class TestDatesAndText:
    """Tests for date normalization and free text."""

    @pytest.mark.parametrize("raw, expected", [
        ("2024-03-15", "2024-03-15"),
        ("2024/03/15", "2024-03-15"),
        ("15/03/2024", "2024-03-15"),
        ("15 Mar 2024", "2024-03-15"),
        ("Mar 15, 2024", "2024-03-15"),
        ("20240315", "2024-03-15"),
    ])
    def test_known_formats(self, raw, expected):
        assert normalize_date(raw) == expected

    def test_unrecognized_date_kept_verbatim(self):
        assert normalize_date("15-Mar") == "15-Mar"

    def test_missing_date_is_today(self):
        assert normalize_date(None) == date.today().isoformat()
        assert normalize_date("  ") == date.today().isoformat()

    def test_date_objects(self):
        assert normalize_date(datetime(2024, 1, 2, 10, 30)) == "2024-01-02"
        assert normalize_date(date(2024, 1, 2)) == "2024-01-02"

    def test_coerce_text(self):
        assert coerce_text("  HSBC  ", "Unknown") == "HSBC"
        assert coerce_text("", "Unknown") == "Unknown"
        assert coerce_text("x" * 300, "Unknown") == "x" * 200


class TestRateTables:
    """Tests for rate table resolution."""

    def test_rate_must_be_positive(self):
        assert coerce_rate("7.8") == Decimal("7.8")
        assert coerce_rate(0) is None
        assert coerce_rate(-1) is None
        assert coerce_rate("abc") is None

    def test_missing_entries_fall_back_to_defaults(self):
        table = resolve_rate_table({"USD": 7.75, "CNY": "bad", "XXX": 3})
        assert table["USD"] == Decimal("7.75")
        assert table["CNY"] == DEFAULT_RATES["CNY"]
        assert "XXX" not in table
        assert set(table) == set(DEFAULT_RATES)

    def test_anchor_is_always_one(self):
        table = resolve_rate_table({"HKD": 5})
        assert table["HKD"] == Decimal("1")

    def test_non_mapping_is_all_defaults(self):
        assert resolve_rate_table(["USD", 7.8]) == DEFAULT_RATES

    def test_valid_entries_only(self):
        entries = valid_rate_entries({"usd": 7.8, "HKD": 2, "JPY": -1, "GBP": None})
        assert entries == {"USD": Decimal("7.8")}
