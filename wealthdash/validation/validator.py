"""
Import Review Checks

DESIGN DECISION: Review checks NEVER block an import.

Everything an import proposes is shown to the user in a preview first.
The checks here only attach issues to that preview so the user knows
what to look at before confirming:

ACCOUNT CHECKS:
- Zero balance (nothing to track)
- Unusually large balance (misread digits, wrong currency)
- Name matches an existing account (balance will be overwritten)

TRANSACTION CHECKS:
- Future-dated transaction
- Unrecognized date format
- Unusually large amount
- Possible duplicate of a transaction already in the ledger

IMPORTANT: Re-importing the same statement is still allowed and still
appends its transactions. The duplicate warning is the only guard.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from wealthdash.config import AppSettings, get_settings
from wealthdash.models.imports import ImportPreview, ValidationIssue
from wealthdash.models.ledger import Account, Transaction


def _transaction_key(date_text: str, description: str, amount: Decimal) -> tuple:
    return (date_text.strip(), description.strip().lower(), amount)


class ImportValidator:
    """
    Reviews an import preview against the current ledger.

    Purely functional: the ledger contents are passed in, nothing is
    read from storage.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _review_accounts(
        self,
        preview: ImportPreview,
        existing_accounts: Iterable[Account],
    ) -> list[ValidationIssue]:
        issues = []
        threshold = Decimal(str(self._settings.large_amount_threshold))
        existing_names = {a.name.strip().lower() for a in existing_accounts}

        for index, draft in enumerate(preview.accounts):
            field = f"accounts[{index}]"

            if draft.balance == 0:
                issues.append(ValidationIssue(
                    field=f"{field}.balance",
                    issue_type="zero_balance",
                    message=f"{draft.name} has a zero balance",
                    severity="warning",
                    suggested_fix="Check the balance column was read correctly",
                ))
            elif abs(draft.balance) > threshold:
                issues.append(ValidationIssue(
                    field=f"{field}.balance",
                    issue_type="suspicious_value",
                    message=(
                        f"{draft.name} balance ({draft.currency.value} "
                        f"{draft.balance:,.2f}) seems unusually large"
                    ),
                    severity="warning",
                    suggested_fix="Please verify the amount and currency",
                ))

            if draft.name.strip().lower() in existing_names:
                issues.append(ValidationIssue(
                    field=f"{field}.name",
                    issue_type="existing_account",
                    message=f"{draft.name} already exists; its balance will be overwritten",
                    severity="info",
                ))

        return issues

    def _review_transactions(
        self,
        preview: ImportPreview,
        existing_transactions: Iterable[Transaction],
    ) -> list[ValidationIssue]:
        issues = []
        today = date.today()
        threshold = Decimal(str(self._settings.large_amount_threshold))
        existing_keys = {
            _transaction_key(t.date, t.description, t.amount)
            for t in existing_transactions
        }

        for index, draft in enumerate(preview.transactions):
            field = f"transactions[{index}]"

            try:
                tx_date = date.fromisoformat(draft.date)
            except ValueError:
                tx_date = None
                issues.append(ValidationIssue(
                    field=f"{field}.date",
                    issue_type="unrecognized_date",
                    message=f"Date '{draft.date}' could not be recognized",
                    severity="info",
                    suggested_fix="The date is kept exactly as written on the statement",
                ))

            if tx_date is not None and tx_date > today:
                issues.append(ValidationIssue(
                    field=f"{field}.date",
                    issue_type="future_date",
                    message=f"Transaction date ({tx_date}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

            if abs(draft.amount) > threshold:
                issues.append(ValidationIssue(
                    field=f"{field}.amount",
                    issue_type="suspicious_value",
                    message=f"Amount ({draft.amount:,.2f}) for '{draft.description}' seems unusually large",
                    severity="warning",
                    suggested_fix="Please verify this amount is correct",
                ))

            key = _transaction_key(draft.date, draft.description, draft.amount)
            if key in existing_keys:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="possible_duplicate",
                    message=(
                        f"'{draft.description}' on {draft.date} may already "
                        f"be in your ledger"
                    ),
                    severity="warning",
                    suggested_fix="Importing the same statement twice adds its transactions twice",
                ))

        return issues

    def review(
        self,
        preview: ImportPreview,
        existing_accounts: Iterable[Account] = (),
        existing_transactions: Iterable[Transaction] = (),
    ) -> list[ValidationIssue]:
        """
        Run every review check on a preview.

        Args:
            preview: The proposed import
            existing_accounts: Accounts currently in the ledger
            existing_transactions: Transactions currently in the ledger

        Returns:
            All issues found, accounts first
        """
        issues = self._review_accounts(preview, existing_accounts)
        issues.extend(self._review_transactions(preview, existing_transactions))
        return issues

    def get_user_friendly_summary(self, issues: list[ValidationIssue]) -> str:
        """
        Generate a user-friendly summary of review issues.

        This is what we show above the preview tables.
        """
        warnings = [i for i in issues if i.severity == "warning"]
        notes = [i for i in issues if i.severity == "info"]

        if not warnings and not notes:
            return "✅ All checks passed! Please review the details below."

        lines = []

        if warnings:
            lines.append("⚠️ Please verify the following:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if notes:
            if lines:
                lines.append("")
            lines.append("ℹ️ Good to know:")
            for issue in notes:
                lines.append(f"   • {issue.message}")

        lines.append("")
        lines.append("Nothing is saved until you confirm.")

        return "\n".join(lines)
