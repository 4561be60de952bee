"""
Shared fixtures for WealthDash tests.

No real API calls are made: every oracle is a FakeModel that replays
scripted replies (or raises scripted errors).
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from wealthdash.audit import AuditLogger
from wealthdash.config import get_settings
from wealthdash.ledger import LedgerStore
from wealthdash.models import Account, AccountType, Currency
from wealthdash.services.storage import InMemoryAuditStorage, InMemorySnapshotStorage


TEST_STORAGE_KEY = "wealthdash_test"


class FakeModel:
    """
    Stand-in for a Gemini GenerativeModel.

    Replies are consumed in order; the last one repeats. A reply that
    is an exception instance is raised instead of returned.
    """

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    async def generate_content_async(self, contents, **kwargs):
        self.calls.append((contents, kwargs))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return SimpleNamespace(text=reply)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """No API key, no backoff delay, data under a temp dir."""
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("GEMINI_RETRY_BASE_SECONDS", "0")
    monkeypatch.setenv("GEMINI_MAX_ATTEMPTS", "3")
    monkeypatch.setenv("WEALTHDASH_STORAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("WEALTHDASH_STORAGE_STORAGE_KEY", TEST_STORAGE_KEY)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def snapshot_storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def store(snapshot_storage):
    return LedgerStore(storage=snapshot_storage, storage_key=TEST_STORAGE_KEY)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def sample_accounts():
    return [
        Account(id="acc-hsbc", name="HSBC Savings", balance=Decimal("1000"), currency=Currency.HKD),
        Account(id="acc-cmb", name="CMB", balance=Decimal("100"), currency=Currency.CNY),
        Account(
            id="acc-futu",
            name="Futu",
            balance=Decimal("200"),
            currency=Currency.USD,
            type=AccountType.INVESTMENT,
        ),
        Account(id="acc-card", name="Credit Card", balance=Decimal("-300"), currency=Currency.HKD),
    ]


@pytest.fixture
def fake_model():
    """Factory for scripted models."""
    return FakeModel
