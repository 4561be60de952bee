"""Tests for totals, spending breakdown and asset distribution."""

from decimal import Decimal

from wealthdash.ledger import (
    asset_distribution,
    compute_totals,
    spending_by_category,
    total_spent,
)
from wealthdash.models import (
    DEFAULT_RATES,
    Account,
    AccountType,
    Currency,
    ExpenseCategory,
    Transaction,
)


def make_tx(amount, category=ExpenseCategory.OTHER, description="Test"):
    return Transaction(
        date="2024-03-01",
        description=description,
        category=category,
        amount=Decimal(amount),
    )


class TestComputeTotals:
    """Tests for compute_totals()."""

    def test_cash_in_two_currencies(self):
        """Test HKD 1000 plus CNY 100 at 1.08 is HK$1108 of cash."""
        accounts = [
            Account(name="HSBC", balance=Decimal("1000"), currency=Currency.HKD),
            Account(name="CMB", balance=Decimal("100"), currency=Currency.CNY),
        ]
        totals = compute_totals(accounts, {"CNY": Decimal("1.08")}, Currency.HKD)

        assert totals.anchor_cash == Decimal("1000")
        assert totals.foreign_cash == Decimal("108")
        assert totals.cash == Decimal("1108")
        assert totals.net_worth == Decimal("1108")

    def test_negative_investment_is_a_liability(self):
        accounts = [
            Account(
                name="Margin",
                balance=Decimal("-500"),
                currency=Currency.HKD,
                type=AccountType.INVESTMENT,
            ),
        ]
        totals = compute_totals(accounts, DEFAULT_RATES)

        assert totals.liabilities == Decimal("500")
        assert totals.investments == 0
        assert totals.net_worth == Decimal("-500")

    def test_all_buckets(self, sample_accounts):
        totals = compute_totals(sample_accounts, DEFAULT_RATES, "HKD")

        assert totals.anchor_cash == Decimal("1000")
        assert totals.foreign_cash == Decimal("108")
        assert totals.investments == Decimal("1564")
        assert totals.liabilities == Decimal("300")
        assert totals.net_worth == Decimal("2372")
        assert totals.display_symbol == "HK$"
        assert totals.cash_by_bucket == {"anchor": Decimal("1000"), "foreign": Decimal("108")}

    def test_order_does_not_matter(self, sample_accounts):
        forward = compute_totals(sample_accounts, DEFAULT_RATES, "USD")
        backward = compute_totals(list(reversed(sample_accounts)), DEFAULT_RATES, "USD")
        assert forward == backward

    def test_base_currency(self):
        accounts = [Account(name="HSBC", balance=Decimal("782"), currency=Currency.HKD)]
        totals = compute_totals(accounts, DEFAULT_RATES, Currency.USD)

        assert totals.base_currency == Currency.USD
        assert totals.net_worth == Decimal("100")
        assert totals.display_symbol == "US$"

    def test_fallback_is_reported(self):
        accounts = [Account(name="Wise", balance=Decimal("10"), currency=Currency.EUR)]
        totals = compute_totals(accounts, {"EUR": 0}, Currency.HKD)

        assert totals.net_worth == Decimal("10")
        assert totals.fallback_currencies == [Currency.EUR]
        assert totals.has_rate_fallback is True

    def test_zero_balance_investment_contributes_nothing(self):
        accounts = [
            Account(
                name="Idle Broker",
                balance=Decimal("0"),
                currency=Currency.USD,
                type=AccountType.INVESTMENT,
            ),
        ]
        totals = compute_totals(accounts, DEFAULT_RATES)

        assert totals.anchor_cash == 0
        assert totals.foreign_cash == 0
        assert totals.investments == 0
        assert totals.liabilities == 0
        assert totals.net_worth == 0

    def test_same_currency_needs_no_rate(self):
        accounts = [Account(name="Wise", balance=Decimal("10"), currency=Currency.EUR)]
        totals = compute_totals(accounts, {}, Currency.EUR)

        assert totals.net_worth == Decimal("10")
        assert totals.fallback_currencies == []

    def test_missing_base_rate_is_reported_when_used(self):
        accounts = [Account(name="HSBC", balance=Decimal("85"), currency=Currency.HKD)]
        totals = compute_totals(accounts, {}, Currency.EUR)

        assert totals.fallback_currencies == [Currency.EUR]

    def test_empty_ledger(self):
        totals = compute_totals([], DEFAULT_RATES)
        assert totals.net_worth == 0
        assert totals.fallback_currencies == []


class TestSpending:
    """Tests for spending figures."""

    def test_total_spent_ignores_inflows(self):
        txs = [make_tx("-100"), make_tx("-50"), make_tx("1000")]
        assert total_spent(txs) == Decimal("150")

    def test_breakdown_sorted_largest_first(self):
        txs = [
            make_tx("-50", ExpenseCategory.TRANSPORT),
            make_tx("-100", ExpenseCategory.DINING),
            make_tx("-50", ExpenseCategory.DINING),
            make_tx("5000", ExpenseCategory.INCOME),
        ]
        breakdown = spending_by_category(txs)

        assert [c.category for c in breakdown] == [ExpenseCategory.DINING, ExpenseCategory.TRANSPORT]
        assert breakdown[0].value == Decimal("150")
        assert breakdown[0].percent == 0.75
        assert breakdown[1].percent == 0.25

    def test_no_outflows(self):
        assert spending_by_category([make_tx("100")]) == []


class TestAssetDistribution:
    """Tests for asset_distribution()."""

    def test_only_positive_values(self, sample_accounts):
        slices = asset_distribution(sample_accounts, DEFAULT_RATES)

        names = [s.name for s in slices]
        assert "Credit Card" not in names
        assert names[0] == "Futu"
        assert abs(sum(s.percent for s in slices) - 1.0) < 1e-9

    def test_values_in_base_currency(self):
        accounts = [Account(name="CMB", balance=Decimal("100"), currency=Currency.CNY)]
        slices = asset_distribution(accounts, DEFAULT_RATES, Currency.HKD)

        assert slices[0].value == Decimal("108.00")
        assert slices[0].original_value == Decimal("100")
        assert slices[0].percent == 1.0
