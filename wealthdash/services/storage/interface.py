"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger decoupled from where its snapshot lives
2. Use in-memory storage for testing
3. Swap the local JSON file for something else later

The ledger is persisted as ONE opaque blob per storage key; the store
rewrites it in full after every mutation. There is deliberately no
per-record API.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from wealthdash.models.audit import AuditEvent


class SnapshotStorageInterface(ABC):
    """
    Key-value storage for the persisted ledger snapshot.

    Synchronous: the store persists inline after each mutation.
    """

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """
        Read the blob stored under a key.

        Returns:
            The blob, or None if nothing is stored under the key

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def save(self, key: str, blob: str) -> None:
        """
        Replace the blob stored under a key.

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Remove the blob stored under a key. Missing keys are ignored.

        Raises:
            PersistenceError: If the removal fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one import attempt).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """A write to the storage backend failed."""
    pass
