"""Services package."""

from wealthdash.services.parsing import (
    DocumentRasterizer,
    EmptyFileError,
    ParseError,
    SpreadsheetParser,
    UnsupportedFileError,
)
from wealthdash.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemorySnapshotStorage,
    LocalAuditStorage,
    LocalFileSnapshotStorage,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)

__all__ = [
    # Parsing services
    "DocumentRasterizer",
    "EmptyFileError",
    "ParseError",
    "SpreadsheetParser",
    "UnsupportedFileError",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemorySnapshotStorage",
    "LocalAuditStorage",
    "LocalFileSnapshotStorage",
    "PersistenceError",
    "SnapshotStorageInterface",
    "StorageError",
]
