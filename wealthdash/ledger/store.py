"""
Ledger Store

The single owner of all ledger state: accounts, transactions and the
exchange-rate table.

DESIGN DECISION: The store is an explicitly constructed object, handed
to whoever needs it. There is no module-level instance.

Every mutation:
1. Replaces state (models are frozen, lists are rebuilt)
2. Persists the FULL snapshot under the storage key
3. Notifies subscribers

Persistence is fire-and-forget. A failed write is logged and the
in-memory state stays authoritative for the rest of the session.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from wealthdash.config import get_settings
from wealthdash.models.ledger import (
    DEFAULT_RATES,
    Account,
    AccountDraft,
    ExchangeRateTable,
    PersistedSnapshot,
    Transaction,
    TransactionDraft,
)
from wealthdash.services.storage import (
    SnapshotStorageInterface,
    StorageError,
    decode_snapshot,
    encode_snapshot,
)
from wealthdash.validation.coercion import (
    coerce_account_type,
    coerce_currency,
    parse_amount,
    parse_decimal_strict,
    resolve_rate_table,
    valid_rate_entries,
)


logger = structlog.get_logger(__name__)

Subscriber = Callable[["LedgerStore"], None]


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError):
    """User input was rejected; shown inline next to the form."""
    pass


class NotFoundError(LedgerError):
    """No account with the given id."""
    pass


class MergeSummary(BaseModel):
    """What a merge did, for the confirmation toast."""

    accounts_updated: int = 0
    accounts_added: int = 0
    transactions_added: int = 0
    rates_updated: list[str] = Field(default_factory=list)


def _parse_user_balance(raw: Any) -> Decimal:
    """Plain numbers are taken as-is; text is accepted if the lenient rule finds digits."""
    amount = parse_decimal_strict(raw)
    if amount is not None:
        return amount
    if isinstance(raw, str) and any(ch.isdigit() for ch in raw):
        return parse_amount(raw)
    raise ValidationError("Balance must be a number")


def _required_name(raw: Any) -> str:
    name = str(raw).strip() if raw is not None else ""
    if not name:
        raise ValidationError("Account name is required")
    return name


class LedgerStore:
    """
    Owns accounts, transactions and rates, and keeps them persisted.

    Reads return immutable views (tuples of frozen models, copies of
    the rate table); only the methods below change state.
    """

    def __init__(
        self,
        storage: Optional[SnapshotStorageInterface] = None,
        storage_key: Optional[str] = None,
        accounts: Iterable[Account] = (),
        transactions: Iterable[Transaction] = (),
        exchange_rates: Optional[Mapping[str, Any]] = None,
        last_updated: Optional[datetime] = None,
    ):
        """
        Initialize the store.

        Args:
            storage: Snapshot backend. If None, nothing is persisted.
            storage_key: Key the snapshot is written under.
            accounts, transactions, exchange_rates: Initial state.
        """
        self._storage = storage
        self._storage_key = storage_key or get_settings().storage.storage_key
        self._accounts: list[Account] = list(accounts)
        self._transactions: list[Transaction] = list(transactions)
        self._rates: ExchangeRateTable = resolve_rate_table(exchange_rates)
        self._last_updated = last_updated or datetime.utcnow()
        self._subscribers: list[Subscriber] = []

    @classmethod
    def load(
        cls,
        storage: SnapshotStorageInterface,
        storage_key: Optional[str] = None,
    ) -> "LedgerStore":
        """
        Restore the store from its persisted snapshot.

        Never fails: an unreadable backend or a malformed blob yields
        an empty ledger with the default rates.
        """
        key = storage_key or get_settings().storage.storage_key
        try:
            blob = storage.load(key)
        except StorageError as e:
            logger.warning("snapshot_load_failed", storage_key=key, error=str(e))
            blob = None

        snapshot = decode_snapshot(blob)
        logger.info(
            "ledger_loaded",
            storage_key=key,
            account_count=len(snapshot.accounts),
            transaction_count=len(snapshot.transactions),
        )
        return cls(
            storage=storage,
            storage_key=key,
            accounts=snapshot.accounts,
            transactions=snapshot.transactions,
            exchange_rates=snapshot.exchange_rates,
            last_updated=snapshot.last_updated,
        )

    # =========================================================================
    # READS
    # =========================================================================

    @property
    def accounts(self) -> tuple[Account, ...]:
        return tuple(self._accounts)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    @property
    def exchange_rates(self) -> ExchangeRateTable:
        return dict(self._rates)

    @property
    def last_updated(self) -> datetime:
        return self._last_updated

    @property
    def storage_key(self) -> str:
        return self._storage_key

    def get_account(self, account_id: str) -> Optional[Account]:
        for account in self._accounts:
            if account.id == account_id:
                return account
        return None

    def snapshot(self) -> PersistedSnapshot:
        return PersistedSnapshot(
            accounts=list(self._accounts),
            transactions=list(self._transactions),
            exchange_rates=dict(self._rates),
            last_updated=self._last_updated,
        )

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback run after every mutation.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    def add_account(self, draft: Union[AccountDraft, Mapping[str, Any]]) -> Account:
        """
        Add a single account from the quick-add form.

        Raises:
            ValidationError: Blank name, or a balance that is not a number
        """
        if not isinstance(draft, AccountDraft):
            try:
                draft = AccountDraft(
                    name=_required_name(draft.get("name")),
                    balance=_parse_user_balance(draft.get("balance")),
                    currency=coerce_currency(draft.get("currency")),
                    type=coerce_account_type(draft.get("type")),
                )
            except PydanticValidationError as e:
                raise ValidationError(str(e.errors()[0]["msg"]))

        account = Account.from_draft(draft)
        self._accounts.append(account)
        logger.info("account_added", account_id=account.id, currency=account.currency.value)
        self._commit()
        return account

    def update_account(self, account_id: str, patch: Mapping[str, Any]) -> Account:
        """
        Replace an account with a patched copy.

        Only name, type, currency and balance can change; the id is kept.

        Raises:
            NotFoundError: No account has this id
            ValidationError: Blank name or non-numeric balance in the patch
        """
        for index, account in enumerate(self._accounts):
            if account.id == account_id:
                break
        else:
            raise NotFoundError(f"Account {account_id} not found")

        fields = {
            "id": account.id,
            "name": account.name,
            "type": account.type,
            "currency": account.currency,
            "balance": account.balance,
        }
        if "name" in patch:
            fields["name"] = _required_name(patch["name"])
        if "type" in patch:
            fields["type"] = coerce_account_type(patch["type"])
        if "currency" in patch:
            fields["currency"] = coerce_currency(patch["currency"])
        if "balance" in patch:
            fields["balance"] = _parse_user_balance(patch["balance"])

        try:
            updated = Account(**fields)
        except PydanticValidationError as e:
            raise ValidationError(str(e.errors()[0]["msg"]))

        self._accounts[index] = updated
        self._commit()
        return updated

    def delete_account(self, account_id: str) -> bool:
        """Remove an account. Unknown ids are ignored."""
        remaining = [a for a in self._accounts if a.id != account_id]
        if len(remaining) == len(self._accounts):
            return False

        self._accounts = remaining
        logger.info("account_deleted", account_id=account_id)
        self._commit()
        return True

    # =========================================================================
    # IMPORT MERGES
    # =========================================================================

    def _merge_accounts(self, drafts: Iterable[AccountDraft], summary: MergeSummary) -> None:
        # Upsert keyed on case-insensitive name; a match only takes the new balance
        by_name: dict[str, int] = {}
        for index, account in enumerate(self._accounts):
            by_name.setdefault(account.name.strip().lower(), index)

        for draft in drafts:
            key = draft.name.strip().lower()
            if not key:
                continue

            if key in by_name:
                index = by_name[key]
                self._accounts[index] = self._accounts[index].model_copy(
                    update={"balance": draft.balance}
                )
                summary.accounts_updated += 1
            else:
                self._accounts.append(Account.from_draft(draft))
                by_name[key] = len(self._accounts) - 1
                summary.accounts_added += 1

    def _merge_transactions(
        self,
        drafts: Iterable[TransactionDraft],
        summary: MergeSummary,
    ) -> None:
        # Newest import first; no deduplication
        added = [Transaction.from_draft(draft) for draft in drafts]
        self._transactions = added + self._transactions
        summary.transactions_added += len(added)

    def _merge_rates(self, partial: Any, summary: MergeSummary) -> None:
        entries = valid_rate_entries(partial)
        self._rates.update(entries)
        summary.rates_updated.extend(sorted(entries))

    def merge_imported_accounts(self, drafts: Iterable[AccountDraft]) -> MergeSummary:
        summary = MergeSummary()
        self._merge_accounts(drafts, summary)
        self._commit()
        return summary

    def merge_imported_transactions(self, drafts: Iterable[TransactionDraft]) -> MergeSummary:
        summary = MergeSummary()
        self._merge_transactions(drafts, summary)
        self._commit()
        return summary

    def apply_import(
        self,
        accounts: Iterable[AccountDraft] = (),
        transactions: Iterable[TransactionDraft] = (),
        exchange_rates: Optional[Mapping[str, Any]] = None,
    ) -> MergeSummary:
        """
        Commit a confirmed import as one mutation.

        Accounts, transactions and rates found in the file are merged
        together, followed by a single persist and a single notification.
        """
        summary = MergeSummary()
        self._merge_accounts(accounts, summary)
        self._merge_transactions(transactions, summary)
        if exchange_rates:
            self._merge_rates(exchange_rates, summary)

        logger.info("import_applied", **summary.model_dump())
        self._commit()
        return summary

    # =========================================================================
    # RATES
    # =========================================================================

    def merge_exchange_rates(self, partial: Mapping[str, Any]) -> list[str]:
        """
        Merge valid rates into the table.

        Non-positive or non-numeric entries and unsupported currencies
        are ignored; the anchor stays at 1.

        Returns:
            The currency codes that were updated
        """
        summary = MergeSummary()
        self._merge_rates(partial, summary)
        if summary.rates_updated:
            self._commit()
        return summary.rates_updated

    # =========================================================================
    # DESTRUCTIVE
    # =========================================================================

    def clear_transactions(self) -> int:
        """Drop every transaction. Returns how many were removed."""
        count = len(self._transactions)
        self._transactions = []
        self._commit()
        return count

    def reset_all(self) -> None:
        """
        Wipe the ledger and delete the persisted snapshot.

        Accounts and transactions are cleared and rates return to the
        defaults.
        """
        self._accounts = []
        self._transactions = []
        self._rates = dict(DEFAULT_RATES)
        self._last_updated = datetime.utcnow()

        if self._storage is not None:
            try:
                self._storage.delete(self._storage_key)
            except StorageError as e:
                logger.warning("persistence_failed", operation="delete", error=str(e))

        logger.info("ledger_reset", storage_key=self._storage_key)
        self._notify()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _commit(self) -> None:
        self._last_updated = datetime.utcnow()
        self._persist()
        self._notify()

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.save(self._storage_key, encode_snapshot(self.snapshot()))
        except StorageError as e:
            logger.warning(
                "persistence_failed",
                operation="save",
                storage_key=self._storage_key,
                error=str(e),
            )

    def _notify(self) -> None:
        # Runs after the commit; subscriber errors are logged, never raised
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception as e:
                logger.error(
                    "subscriber_failed",
                    subscriber=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                )
