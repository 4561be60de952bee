"""
Tests for WealthDash models

Test strategy:
1. Unit tests for individual components (models, validators, ledger math)
2. Integration tests for flows (with mocked external services)
3. No real API calls in tests (use mocks)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from wealthdash.models import (
    Account,
    AccountDraft,
    AccountType,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    Currency,
    ExpenseCategory,
    FileKind,
    ImportPreview,
    ImportSession,
    ImportState,
    Transaction,
    TransactionDraft,
    ValidationIssue,
)
from wealthdash.models.imports import IMPORT_TRANSITIONS, TERMINAL_STATES


class TestLedgerModels:
    """Tests for account and transaction models."""

    def test_account_defaults(self):
        """Test Account defaults and generated id."""
        account = Account(name="HSBC")
        assert account.id.startswith("acc-")
        assert account.currency == Currency.HKD
        assert account.type == AccountType.BANK
        assert account.balance == Decimal("0")

    def test_account_ids_are_unique(self):
        """Test two accounts never share an id."""
        assert Account(name="A").id != Account(name="A").id

    def test_account_strips_whitespace(self):
        """Test that whitespace is stripped from account name."""
        account = Account(name="  HSBC  ")
        assert account.name == "HSBC"

    def test_account_is_frozen(self):
        """Test that accounts cannot be mutated in place."""
        account = Account(name="HSBC", balance=Decimal("100"))
        with pytest.raises(ValueError):
            account.balance = Decimal("200")

    def test_account_rejects_empty_name(self):
        """Test that an empty name is rejected."""
        with pytest.raises(ValueError):
            AccountDraft(name="   ", balance=Decimal("1"))

    def test_account_from_draft(self):
        """Test building an account from a draft."""
        draft = AccountDraft(
            name="Futu",
            balance=Decimal("-50"),
            currency=Currency.USD,
            type=AccountType.INVESTMENT,
        )
        account = Account.from_draft(draft)
        assert account.name == "Futu"
        assert account.balance == Decimal("-50")
        assert account.currency == Currency.USD
        assert account.type == AccountType.INVESTMENT

    def test_transaction_from_draft(self):
        """Test building a transaction from a draft."""
        draft = TransactionDraft(date="2024-03-01", amount=Decimal("-45"))
        tx = Transaction.from_draft(draft)
        assert tx.id.startswith("tx-")
        assert tx.description == "Unknown"
        assert tx.category == ExpenseCategory.OTHER
        assert tx.is_outflow is True

    def test_enum_values(self):
        """Test enum string values."""
        assert AccountType.WALLET.value == "Digital Wallet"
        assert AccountType.PERSONAL.value == "Personal/Other"
        assert Currency("CNY") == Currency.CNY


class TestImportModels:
    """Tests for the import state machine models."""

    def test_new_session_is_idle(self):
        """Test a fresh session."""
        session = ImportSession()
        assert session.state == ImportState.IDLE
        assert session.is_active is False
        assert session.is_terminal is False
        assert session.can_confirm is False

    def test_can_confirm_needs_preview(self):
        """Test can_confirm requires both PREVIEWING and a preview."""
        session = ImportSession(state=ImportState.PREVIEWING)
        assert session.can_confirm is False

        session.preview = ImportPreview(
            source=FileKind.SPREADSHEET,
            filename="assets.csv",
            accounts=[AccountDraft(name="HSBC", balance=Decimal("1"))],
        )
        assert session.can_confirm is True

    def test_every_state_has_transitions(self):
        """Test the transition table covers every state."""
        assert set(IMPORT_TRANSITIONS) == set(ImportState)

    def test_confirmed_and_cancelled_are_final(self):
        """Test nothing leaves CONFIRMED or CANCELLED."""
        assert IMPORT_TRANSITIONS[ImportState.CONFIRMED] == frozenset()
        assert IMPORT_TRANSITIONS[ImportState.CANCELLED] == frozenset()
        assert IMPORT_TRANSITIONS[ImportState.FAILED] == {ImportState.IDLE}

    def test_active_states_can_fail_or_cancel(self):
        """Test every in-flight state may fail or be cancelled."""
        for state in (ImportState.READING, ImportState.EXTRACTING, ImportState.PREVIEWING):
            assert ImportState.FAILED in IMPORT_TRANSITIONS[state]
            assert ImportState.CANCELLED in IMPORT_TRANSITIONS[state]

    def test_only_previewing_reaches_confirmed(self):
        """Test there is no path to CONFIRMED that skips the preview."""
        sources = [s for s, targets in IMPORT_TRANSITIONS.items() if ImportState.CONFIRMED in targets]
        assert sources == [ImportState.PREVIEWING]
        assert ImportState.CONFIRMED in TERMINAL_STATES

    def test_preview_empty_and_warnings(self):
        """Test ImportPreview helpers."""
        preview = ImportPreview(
            source=FileKind.DOCUMENT,
            filename="statement.pdf",
            issues=[
                ValidationIssue(
                    field="accounts[0].balance",
                    issue_type="zero_balance",
                    message="Zero balance",
                    severity="warning",
                ),
                ValidationIssue(
                    field="accounts[0].name",
                    issue_type="existing_account",
                    message="Will be overwritten",
                    severity="info",
                ),
            ],
        )
        assert preview.is_empty is True
        assert preview.warnings == ["Zero balance"]

    def test_validation_issue_severity(self):
        """Test severity must be error, warning or info."""
        with pytest.raises(ValueError):
            ValidationIssue(
                field="x",
                issue_type="y",
                message="z",
                severity="fatal",
            )


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.IMPORT_STARTED,
            description="Import started",
        )
        assert event.event_type == AuditEventType.IMPORT_STARTED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RATES_REFRESHED,
            description="Rates refreshed",
            details={"currencies": ["USD"]},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "rates_refreshed"
        assert log_dict["correlation_id"] is None
        assert log_dict["details"]["currencies"] == ["USD"]

    def test_audit_event_builder_import_started(self):
        """Test AuditEventBuilder.import_started."""
        correlation_id = uuid4()
        session_id = uuid4()

        event = AuditEventBuilder.import_started(
            session_id=session_id,
            filename="statement.pdf",
            file_size=1024,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.IMPORT_STARTED
        assert event.entity_id == session_id
        assert event.correlation_id == correlation_id
        assert event.details["file_size_bytes"] == 1024
        assert event.is_user_action is True

    def test_audit_event_builder_import_failed(self):
        """Test AuditEventBuilder.import_failed."""
        event = AuditEventBuilder.import_failed(
            session_id=uuid4(),
            error_type="EmptyFileError",
            error_message="Spreadsheet seems empty.",
            correlation_id=uuid4(),
        )

        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "EmptyFileError"
        assert event.is_user_action is False

    def test_audit_event_builder_ledger_reset(self):
        """Test AuditEventBuilder.ledger_reset."""
        event = AuditEventBuilder.ledger_reset(account_count=3, transaction_count=10)

        assert event.event_type == AuditEventType.LEDGER_RESET
        assert event.details == {"account_count": 3, "transaction_count": 10}
        assert event.is_user_action is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
