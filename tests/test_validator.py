"""Tests for import review checks."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from wealthdash.models import (
    Account,
    AccountDraft,
    ExpenseCategory,
    FileKind,
    ImportPreview,
    Transaction,
    TransactionDraft,
)
from wealthdash.validation import ImportValidator


@pytest.fixture
def validator():
    return ImportValidator()


def preview(accounts=(), transactions=()):
    return ImportPreview(
        source=FileKind.DOCUMENT,
        filename="statement.pdf",
        accounts=list(accounts),
        transactions=list(transactions),
    )


def issue_types(issues):
    return [i.issue_type for i in issues]


class TestAccountChecks:
    """Tests for account review."""

    def test_clean_preview(self, validator):
        issues = validator.review(preview(accounts=[AccountDraft(name="HSBC", balance=Decimal("100"))]))

        assert issues == []
        assert validator.get_user_friendly_summary(issues).startswith("✅ All checks passed!")

    def test_zero_balance(self, validator):
        issues = validator.review(preview(accounts=[AccountDraft(name="HSBC", balance=Decimal("0"))]))
        assert issue_types(issues) == ["zero_balance"]
        assert issues[0].severity == "warning"

    def test_suspiciously_large_balance(self, validator):
        issues = validator.review(preview(accounts=[AccountDraft(name="HSBC", balance=Decimal("99999999999"))]))
        assert issue_types(issues) == ["suspicious_value"]

    def test_existing_account_will_be_overwritten(self, validator):
        existing = [Account(name="HSBC", balance=Decimal("1"))]
        issues = validator.review(
            preview(accounts=[AccountDraft(name="hsbc ", balance=Decimal("5"))]),
            existing_accounts=existing,
        )

        assert issue_types(issues) == ["existing_account"]
        assert issues[0].severity == "info"
        assert "overwritten" in issues[0].message


class TestTransactionChecks:
    """Tests for transaction review."""

    def test_future_date(self, validator):
        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        issues = validator.review(preview(transactions=[
            TransactionDraft(date=tomorrow, description="Rent", amount=Decimal("-100")),
        ]))
        assert issue_types(issues) == ["future_date"]

    def test_unrecognized_date_is_only_a_note(self, validator):
        issues = validator.review(preview(transactions=[
            TransactionDraft(date="15-Mar", description="Taxi", amount=Decimal("-80")),
        ]))
        assert issue_types(issues) == ["unrecognized_date"]
        assert issues[0].severity == "info"

    def test_possible_duplicate(self, validator):
        existing = [
            Transaction(
                date="2024-03-01",
                description="STARBUCKS",
                category=ExpenseCategory.DINING,
                amount=Decimal("-45.00"),
            ),
        ]
        issues = validator.review(
            preview(transactions=[
                TransactionDraft(date="2024-03-01", description="Starbucks", amount=Decimal("-45")),
                TransactionDraft(date="2024-03-02", description="Starbucks", amount=Decimal("-45")),
            ]),
            existing_transactions=existing,
        )

        assert issue_types(issues) == ["possible_duplicate"]
        assert issues[0].field == "transactions[0]"

    def test_summary_lists_warnings_and_notes(self, validator):
        existing = [Account(name="HSBC", balance=Decimal("1"))]
        issues = validator.review(
            preview(accounts=[
                AccountDraft(name="HSBC", balance=Decimal("5")),
                AccountDraft(name="Mox", balance=Decimal("0")),
            ]),
            existing_accounts=existing,
        )
        summary = validator.get_user_friendly_summary(issues)

        assert "⚠️ Please verify the following:" in summary
        assert "ℹ️ Good to know:" in summary
        assert summary.endswith("Nothing is saved until you confirm.")
