"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The ledger snapshot is a JSON document in a local data directory; the
audit log is a JSONL file beside it.
"""

from wealthdash.services.storage.interface import (
    AuditStorageInterface,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)
from wealthdash.services.storage.local import (
    LocalAuditStorage,
    LocalFileSnapshotStorage,
)
from wealthdash.services.storage.memory import (
    InMemoryAuditStorage,
    InMemorySnapshotStorage,
)
from wealthdash.services.storage.snapshot import (
    decode_snapshot,
    encode_snapshot,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "SnapshotStorageInterface",
    # Exceptions
    "PersistenceError",
    "StorageError",
    # Local implementation
    "LocalAuditStorage",
    "LocalFileSnapshotStorage",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemorySnapshotStorage",
    # Snapshot codec
    "decode_snapshot",
    "encode_snapshot",
]
