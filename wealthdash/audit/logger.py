"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of where each balance came from
2. Debugging capability when an extraction goes wrong
3. A history the user can inspect

The audit logger:
- Is async so it can sit inside the import flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace one import attempt end to end
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from wealthdash.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from wealthdash.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog's JSON lines through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=level.upper())


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage backend (JSONL file, or memory in tests)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("wealthdash.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_import_started(
        self,
        session_id: UUID,
        filename: str,
        file_size: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_started(
            session_id=session_id,
            filename=filename,
            file_size=file_size,
            correlation_id=correlation_id,
        ))

    async def log_file_read(
        self,
        session_id: UUID,
        file_kind: str,
        page_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.file_read(
            session_id=session_id,
            file_kind=file_kind,
            page_count=page_count,
            correlation_id=correlation_id,
        ))

    async def log_extraction_completed(
        self,
        session_id: UUID,
        account_count: int,
        transaction_count: int,
        issue_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            session_id=session_id,
            account_count=account_count,
            transaction_count=transaction_count,
            issue_count=issue_count,
            correlation_id=correlation_id,
        ))

    async def log_import_failed(
        self,
        session_id: UUID,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log an import that ended in FAILED."""
        await self.log(AuditEventBuilder.import_failed(
            session_id=session_id,
            error_type=error_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_import_cancelled(
        self,
        session_id: UUID,
        state: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_cancelled(
            session_id=session_id,
            state=state,
            correlation_id=correlation_id,
        ))

    async def log_import_confirmed(
        self,
        session_id: UUID,
        account_count: int,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_confirmed(
            session_id=session_id,
            account_count=account_count,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    async def log_rates_refreshed(self, currencies: list[str]) -> None:
        await self.log(AuditEventBuilder.rates_refreshed(currencies=currencies))

    async def log_rates_refresh_failed(self) -> None:
        await self.log(AuditEventBuilder.rates_refresh_failed())

    async def log_insight_generated(self, kinds: list[str]) -> None:
        await self.log(AuditEventBuilder.insight_generated(kinds=kinds))

    async def log_transactions_cleared(self, count: int) -> None:
        await self.log(AuditEventBuilder.transactions_cleared(count=count))

    async def log_ledger_reset(self, account_count: int, transaction_count: int) -> None:
        """Log a full wipe. The audit log itself survives the reset."""
        await self.log(AuditEventBuilder.ledger_reset(
            account_count=account_count,
            transaction_count=transaction_count,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))
