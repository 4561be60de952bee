"""
Audit Models for WealthDash

Every import attempt, rate refresh and destructive ledger action is logged.
This provides:
1. Traceability of where each balance came from
2. Debugging information when an extraction goes wrong
3. Ability to reconstruct what an import attempt did

DESIGN DECISION: Audit logs are append-only. We never delete or modify them,
not even on a full ledger reset.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the import pipeline has its own event type.
    """
    # Import pipeline
    IMPORT_STARTED = "import_started"
    FILE_READ = "file_read"
    EXTRACTION_COMPLETED = "extraction_completed"
    IMPORT_FAILED = "import_failed"
    IMPORT_CANCELLED = "import_cancelled"
    IMPORT_CONFIRMED = "import_confirmed"

    # Exchange rates
    RATES_REFRESHED = "rates_refreshed"
    RATES_REFRESH_FAILED = "rates_refresh_failed"

    # Insight
    INSIGHT_GENERATED = "insight_generated"

    # Destructive ledger actions
    TRANSACTIONS_CLEARED = "transactions_cleared"
    LEDGER_RESET = "ledger_reset"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'import', 'ledger', 'rates')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - all events of one import attempt share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.import_started(session_id, filename, ...)
        event = AuditEventBuilder.import_confirmed(session_id, 2, 10, ...)
    """

    @staticmethod
    def import_started(
        session_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_STARTED,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Import started: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def file_read(
        session_id: UUID,
        file_kind: str,
        page_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FILE_READ,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"File read as {file_kind}",
            details={
                "file_kind": file_kind,
                "page_count": page_count,
            },
        )

    @staticmethod
    def extraction_completed(
        session_id: UUID,
        account_count: int,
        transaction_count: int,
        issue_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=(
                f"Extracted {account_count} accounts and "
                f"{transaction_count} transactions"
            ),
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
                "issue_count": issue_count,
            },
        )

    @staticmethod
    def import_failed(
        session_id: UUID,
        error_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"Import failed: {error_type}",
            error_code=error_type,
            error_message=error_message,
        )

    @staticmethod
    def import_cancelled(
        session_id: UUID,
        state: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_CANCELLED,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=f"User cancelled import while {state}",
            details={"state": state},
            is_user_action=True,
        )

    @staticmethod
    def import_confirmed(
        session_id: UUID,
        account_count: int,
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_CONFIRMED,
            entity_type="import",
            entity_id=session_id,
            correlation_id=correlation_id,
            description=(
                f"User confirmed import of {account_count} accounts and "
                f"{transaction_count} transactions"
            ),
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def rates_refreshed(
        currencies: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_REFRESHED,
            entity_type="rates",
            correlation_id=correlation_id,
            description=f"Exchange rates refreshed for {len(currencies)} currencies",
            details={"currencies": currencies},
        )

    @staticmethod
    def rates_refresh_failed(
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_REFRESH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            correlation_id=correlation_id,
            description="Exchange rate refresh returned no usable rates",
        )

    @staticmethod
    def insight_generated(
        kinds: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_GENERATED,
            entity_type="insight",
            correlation_id=correlation_id,
            description=f"Generated insight: {', '.join(kinds) or 'none'}",
            details={"kinds": kinds},
        )

    @staticmethod
    def transactions_cleared(count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_CLEARED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description=f"User cleared {count} transactions",
            details={"transaction_count": count},
            is_user_action=True,
        )

    @staticmethod
    def ledger_reset(account_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            description="User reset all ledger data",
            details={
                "account_count": account_count,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
