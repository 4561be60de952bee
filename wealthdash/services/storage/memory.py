"""
In-Memory Storage

Used by the test suite and by the app when no data directory is
writable. Contents vanish with the process.
"""

from typing import Optional
from uuid import UUID

from wealthdash.models.audit import AuditEvent
from wealthdash.services.storage.interface import (
    AuditStorageInterface,
    PersistenceError,
    SnapshotStorageInterface,
)


class InMemorySnapshotStorage(SnapshotStorageInterface):
    """
    Dict-backed snapshot storage.

    Set `fail_writes` to simulate a backend that rejects every write.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.blobs: dict[str, str] = dict(initial or {})
        self.fail_writes = False
        self.save_count = 0

    def load(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def save(self, key: str, blob: str) -> None:
        if self.fail_writes:
            raise PersistenceError("Storage is full")
        self.blobs[key] = blob
        self.save_count += 1

    def delete(self, key: str) -> None:
        if self.fail_writes:
            raise PersistenceError("Storage is read-only")
        self.blobs.pop(key, None)


class InMemoryAuditStorage(AuditStorageInterface):
    """List-backed audit storage."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
