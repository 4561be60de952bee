"""
Local File Storage Implementation

DESIGN DECISION: The dashboard is single-user and single-machine, so the
snapshot lives in a JSON file under a local data directory:

    <data_dir>/<storage_key>.json

Bumping the storage key on a schema change simply starts a new file;
old files are ignored, never migrated.

Writes go to a temporary file first and are then renamed over the
target, so a crash mid-write never leaves a half-written snapshot.

The audit log is a JSONL file next to it, one event per line.
"""

import json
import os
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from wealthdash.models.audit import AuditEvent
from wealthdash.services.storage.interface import (
    AuditStorageInterface,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LocalFileSnapshotStorage(SnapshotStorageInterface):
    """One JSON file per storage key inside data_dir."""

    def __init__(self, data_dir: Union[str, Path]):
        self._data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read snapshot {path}: {e}")

    def save(self, key: str, blob: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(blob, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(f"Failed to write snapshot {path}: {e}")

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to delete snapshot {key}: {e}")


class LocalAuditStorage(AuditStorageInterface):
    """
    Append-only JSONL audit log.

    Unreadable lines are skipped on read rather than failing the query.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    def _read_events(self) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                for line in handle:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        events.append(AuditEvent.model_validate_json(line))
                    except ValueError:
                        continue
        except OSError as e:
            raise StorageError(f"Failed to read audit log: {e}")
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(event.to_log_dict(), ensure_ascii=False))
                handle.write("\n")
            return True
        except OSError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), path=str(self._path))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = self._read_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
