"""
Main Orchestrator for WealthDash

This module ties together all the components and defines the
end-to-end flows for:
1. Statement Import (file -> read -> extract -> preview -> confirm)
2. Exchange Rate Refresh (oracle -> merge into the rate table)
3. Insight (ledger summary -> oracle commentary)
4. Ledger Maintenance (bulk clear, full reset)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the ledger before the user confirms a preview
- Every import step is audited under one correlation id
- A cancelled import discards whatever arrives afterwards

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from pathlib import PurePath
from typing import NamedTuple, Optional

import structlog
from pydantic import BaseModel

from wealthdash.agents import (
    ExchangeRateAgent,
    InsightAgent,
    OracleError,
    OracleUnavailableError,
    StatementExtractionAgent,
)
from wealthdash.audit import AuditLogger
from wealthdash.config import Settings, get_settings
from wealthdash.ledger import LedgerStore, MergeSummary, compute_totals
from wealthdash.models.imports import (
    IMPORT_TRANSITIONS,
    FileKind,
    ImportPreview,
    ImportSession,
    ImportState,
)
from wealthdash.models.ledger import ANCHOR_CURRENCY, DEFAULT_RATES
from wealthdash.services.parsing import (
    DocumentRasterizer,
    EmptyFileError,
    ParseError,
    SpreadsheetParser,
    UnsupportedFileError,
    detect_file_kind,
    read_rows,
)
from wealthdash.services.storage import (
    InMemoryAuditStorage,
    InMemorySnapshotStorage,
    LocalAuditStorage,
    LocalFileSnapshotStorage,
)
from wealthdash.validation import ImportValidator


logger = structlog.get_logger(__name__)


class ImportStateError(Exception):
    """An import session was asked to make a transition it does not allow."""
    pass


class StatementImportFlow:
    """
    Orchestrates the statement import flow.

    Flow:
    1. Read → spreadsheet rows, or JPEG pages for documents/images
    2. Extract → local heuristics (spreadsheets) or the oracle (pages)
    3. Review → non-blocking issues attached to the preview
    4. Preview → present to user (PAUSE - require confirmation)
    5. Confirm → one all-or-nothing merge into the ledger

    Human confirmation (step 5) is MANDATORY.
    The flow NEVER auto-imports.
    """

    def __init__(
        self,
        store: LedgerStore,
        parser: Optional[SpreadsheetParser] = None,
        rasterizer: Optional[DocumentRasterizer] = None,
        extraction_agent: Optional[StatementExtractionAgent] = None,
        validator: Optional[ImportValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._store = store
        self._parser = parser or SpreadsheetParser()
        self._rasterizer = rasterizer or DocumentRasterizer(self._settings.app)
        self._extraction_agent = extraction_agent or StatementExtractionAgent(self._settings)
        self._validator = validator or ImportValidator(self._settings.app)
        self._audit_logger = audit_logger or AuditLogger()

    # =========================================================================
    # STATE MACHINE
    # =========================================================================

    def new_session(self, filename: Optional[str] = None) -> ImportSession:
        return ImportSession(filename=filename)

    def _transition(
        self,
        session: ImportSession,
        target: ImportState,
        message: str = "",
    ) -> None:
        if target not in IMPORT_TRANSITIONS[session.state]:
            raise ImportStateError(
                f"Cannot move import from {session.state.value} to {target.value}"
            )
        logger.info(
            "import_transition",
            session_id=str(session.session_id),
            from_state=session.state.value,
            to_state=target.value,
        )
        session.state = target
        session.status_message = message

    @staticmethod
    def _cancelled(session: ImportSession) -> bool:
        return session.state == ImportState.CANCELLED

    async def _fail(self, session: ImportSession, error: Exception) -> None:
        session.error_message = str(error) or "Failed to process file."
        session.preview = None
        self._transition(session, ImportState.FAILED, session.error_message)

        await self._audit_logger.log_import_failed(
            session_id=session.session_id,
            error_type=type(error).__name__,
            error_message=session.error_message,
            correlation_id=session.correlation_id,
        )
        if isinstance(error, OracleError) and not isinstance(error, OracleUnavailableError):
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=str(error),
                correlation_id=session.correlation_id,
            )

    # =========================================================================
    # STEPS
    # =========================================================================

    def _check_upload(self, data: bytes, filename: str) -> None:
        app = self._settings.app
        if len(data) > app.max_upload_size_bytes:
            raise ParseError(
                f"File is too large ({len(data) / 1024 / 1024:.1f} MB). "
                f"Maximum size is {app.max_upload_size_mb} MB."
            )
        extension = PurePath(filename or "").suffix.lower().lstrip(".")
        if extension and extension not in app.supported_formats_list:
            raise UnsupportedFileError(
                f"Unsupported file type: .{extension}. "
                f"Supported: {', '.join(app.supported_formats_list)}"
            )

    async def _read_pages(self, kind: FileKind, data: bytes) -> list[bytes]:
        if kind == FileKind.DOCUMENT:
            return await asyncio.to_thread(self._rasterizer.rasterize, data)
        return await asyncio.to_thread(self._rasterizer.prepare_image, data)

    async def run(
        self,
        session: ImportSession,
        data: bytes,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> ImportSession:
        """
        Read and extract a file into a preview.

        The session ends in PREVIEWING on success, FAILED on a parse or
        oracle error, or stays CANCELLED if the user cancelled meanwhile.
        Nothing is written to the ledger here.

        Raises:
            ImportStateError: The session is not IDLE
        """
        filename = filename or session.filename or "upload"
        session.filename = filename
        session.error_message = None
        self._transition(session, ImportState.READING, "Reading file...")

        await self._audit_logger.log_import_started(
            session_id=session.session_id,
            filename=filename,
            file_size=len(data),
            correlation_id=session.correlation_id,
        )

        try:
            self._check_upload(data, filename)
            kind = detect_file_kind(filename, mime_type)
            session.file_kind = kind

            if kind == FileKind.SPREADSHEET:
                rows = await asyncio.to_thread(read_rows, data, filename)
                page_count = 1
            else:
                pages = await self._read_pages(kind, data)
                page_count = len(pages)

            await self._audit_logger.log_file_read(
                session_id=session.session_id,
                file_kind=kind.value,
                page_count=page_count,
                correlation_id=session.correlation_id,
            )
            if self._cancelled(session):
                return session

            if kind == FileKind.SPREADSHEET:
                self._transition(session, ImportState.EXTRACTING, "Parsing spreadsheet...")
                result = self._parser.parse(rows)
                accounts, transactions = result.accounts, []
                exchange_rates = result.exchange_rates
            else:
                self._transition(
                    session,
                    ImportState.EXTRACTING,
                    f"AI is analyzing {page_count} page(s) (balances & transactions)...",
                )
                accounts, transactions = await self._extraction_agent.extract(pages)
                exchange_rates = {}

            # The user may have cancelled while we were waiting
            if self._cancelled(session):
                logger.info("import_result_discarded", session_id=str(session.session_id))
                return session

            if not accounts and not transactions:
                raise EmptyFileError("AI couldn't find any financial data.")

            preview = ImportPreview(
                source=kind,
                filename=filename,
                accounts=accounts,
                transactions=transactions,
                exchange_rates=exchange_rates,
            )
            preview.issues = self._validator.review(
                preview,
                self._store.accounts,
                self._store.transactions,
            )
        except (ParseError, OracleError) as e:
            if not self._cancelled(session):
                await self._fail(session, e)
            return session
        except ImportStateError:
            raise
        except Exception as e:
            if self._cancelled(session):
                return session
            await self._audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"filename": filename},
                correlation_id=session.correlation_id,
            )
            await self._fail(session, ParseError("Failed to process file."))
            return session

        session.preview = preview
        self._transition(
            session,
            ImportState.PREVIEWING,
            self._validator.get_user_friendly_summary(preview.issues),
        )
        await self._audit_logger.log_extraction_completed(
            session_id=session.session_id,
            account_count=len(preview.accounts),
            transaction_count=len(preview.transactions),
            issue_count=len(preview.issues),
            correlation_id=session.correlation_id,
        )
        return session

    async def confirm(self, session: ImportSession) -> MergeSummary:
        """
        Commit the previewed data to the ledger.

        CRITICAL: This is called ONLY after explicit user confirmation.

        Raises:
            ImportStateError: There is no preview to confirm
        """
        if not session.can_confirm:
            raise ImportStateError(
                f"Nothing to confirm while import is {session.state.value}"
            )

        preview = session.preview
        summary = self._store.apply_import(
            accounts=preview.accounts,
            transactions=preview.transactions,
            exchange_rates=preview.exchange_rates,
        )
        self._transition(session, ImportState.CONFIRMED, "Imported.")

        await self._audit_logger.log_import_confirmed(
            session_id=session.session_id,
            account_count=len(preview.accounts),
            transaction_count=len(preview.transactions),
            correlation_id=session.correlation_id,
        )
        return summary

    async def cancel(self, session: ImportSession) -> None:
        """Abandon the import. The ledger is untouched."""
        previous = session.state
        self._transition(session, ImportState.CANCELLED, "Import cancelled.")
        session.preview = None

        await self._audit_logger.log_import_cancelled(
            session_id=session.session_id,
            state=previous.value,
            correlation_id=session.correlation_id,
        )

    def dismiss(self, session: ImportSession) -> None:
        """Acknowledge a failure; the session can be run again."""
        self._transition(session, ImportState.IDLE)
        session.error_message = None
        session.preview = None
        session.file_kind = None


class ExchangeRateFlow:
    """Refreshes the rate table from the oracle."""

    # At most this many currencies moved off the built-in defaults counts as never refreshed
    SPARSE_THRESHOLD = 2

    def __init__(
        self,
        store: LedgerStore,
        agent: Optional[ExchangeRateAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._agent = agent or ExchangeRateAgent()
        self._audit_logger = audit_logger or AuditLogger()

    def is_sparse(self) -> bool:
        rates = self._store.exchange_rates
        live = [
            code for code, default in DEFAULT_RATES.items()
            if code != ANCHOR_CURRENCY.value and rates.get(code) != default
        ]
        return len(live) <= self.SPARSE_THRESHOLD

    async def refresh(self) -> list[str]:
        """
        Fetch and merge current rates.

        Returns:
            Currency codes that were updated; empty when the oracle had nothing
        """
        rates = await self._agent.fetch_rates()
        if not rates:
            await self._audit_logger.log_rates_refresh_failed()
            return []

        updated = self._store.merge_exchange_rates(rates)
        await self._audit_logger.log_rates_refreshed(updated)
        return updated

    async def refresh_if_sparse(self) -> list[str]:
        """Refresh only when the table still looks like the built-in defaults."""
        if not self.is_sparse():
            return []
        return await self.refresh()


class InsightReport(BaseModel):
    """AI commentary; a side is None when there was nothing to analyse."""

    portfolio: Optional[str] = None
    spending: Optional[str] = None


class InsightFlow:
    """Runs portfolio and spending commentary concurrently."""

    def __init__(
        self,
        agent: Optional[InsightAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent or InsightAgent()
        self._audit_logger = audit_logger or AuditLogger()

    async def analyze(self, store: LedgerStore) -> InsightReport:
        accounts = store.accounts
        transactions = store.transactions

        kinds: list[str] = []
        calls = []
        if accounts:
            totals = compute_totals(accounts, store.exchange_rates, ANCHOR_CURRENCY)
            kinds.append("portfolio")
            calls.append(self._agent.analyze_portfolio(accounts, totals.net_worth))
        if any(t.amount < 0 for t in transactions):
            kinds.append("spending")
            calls.append(self._agent.analyze_spending(transactions))

        results = dict(zip(kinds, await asyncio.gather(*calls)))
        await self._audit_logger.log_insight_generated(kinds)
        return InsightReport(**results)


class LedgerMaintenanceFlow:
    """Destructive ledger actions, each audited."""

    def __init__(
        self,
        store: LedgerStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()

    async def clear_transactions(self) -> int:
        count = self._store.clear_transactions()
        await self._audit_logger.log_transactions_cleared(count)
        return count

    async def reset_all(self) -> None:
        """Wipe accounts, transactions and rates. The audit log is kept."""
        account_count = len(self._store.accounts)
        transaction_count = len(self._store.transactions)
        self._store.reset_all()
        await self._audit_logger.log_ledger_reset(account_count, transaction_count)


class AppComponents(NamedTuple):
    store: LedgerStore
    import_flow: StatementImportFlow
    rate_flow: ExchangeRateFlow
    insight_flow: InsightFlow
    maintenance_flow: LedgerMaintenanceFlow
    audit_logger: AuditLogger


async def confirm_and_analyze(
    components: AppComponents,
    session: ImportSession,
) -> tuple[MergeSummary, InsightReport]:
    """
    Confirm an import, then refresh the AI commentary on the new ledger.

    The insight never undoes the import: the agents answer failures
    with a fallback message instead of raising.
    """
    summary = await components.import_flow.confirm(session)
    report = await components.insight_flow.analyze(components.store)
    return summary, report


def create_app_components(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to persist to the local data directory.
                    Set to False for an in-memory ledger.
        settings: Settings to use; defaults to the cached settings.

    Returns:
        AppComponents sharing one store and one audit logger
    """
    settings = settings or get_settings()
    storage_settings = settings.storage

    if use_storage:
        snapshot_storage = LocalFileSnapshotStorage(storage_settings.data_dir)
        audit_storage = LocalAuditStorage(
            storage_settings.data_dir / storage_settings.audit_log_name
        )
    else:
        snapshot_storage = InMemorySnapshotStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    store = LedgerStore.load(snapshot_storage, storage_settings.storage_key)

    return AppComponents(
        store=store,
        import_flow=StatementImportFlow(
            store=store,
            audit_logger=audit_logger,
            settings=settings,
        ),
        rate_flow=ExchangeRateFlow(
            store=store,
            agent=ExchangeRateAgent(settings),
            audit_logger=audit_logger,
        ),
        insight_flow=InsightFlow(
            agent=InsightAgent(settings),
            audit_logger=audit_logger,
        ),
        maintenance_flow=LedgerMaintenanceFlow(
            store=store,
            audit_logger=audit_logger,
        ),
        audit_logger=audit_logger,
    )
