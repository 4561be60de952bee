"""
Statement Import Models

The import pipeline is a small state machine. A session moves through:

    IDLE -> READING -> EXTRACTING -> PREVIEWING -> CONFIRMED
                                              +-> CANCELLED
         (any active state)                   +-> FAILED -> IDLE (dismiss)

CRITICAL: Nothing reaches the ledger before CONFIRMED.
A preview is PROPOSED data, exactly like an extraction awaiting review.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from wealthdash.models.ledger import AccountDraft, TransactionDraft


class ImportState(str, Enum):
    """Import session states."""
    IDLE = "idle"
    READING = "reading"
    EXTRACTING = "extracting"
    PREVIEWING = "previewing"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


# Allowed transitions; anything else is a programming error
IMPORT_TRANSITIONS: dict[ImportState, frozenset[ImportState]] = {
    ImportState.IDLE: frozenset({ImportState.READING}),
    ImportState.READING: frozenset({
        ImportState.EXTRACTING, ImportState.CANCELLED, ImportState.FAILED,
    }),
    ImportState.EXTRACTING: frozenset({
        ImportState.PREVIEWING, ImportState.CANCELLED, ImportState.FAILED,
    }),
    ImportState.PREVIEWING: frozenset({
        ImportState.CONFIRMED, ImportState.CANCELLED, ImportState.FAILED,
    }),
    ImportState.CONFIRMED: frozenset(),
    ImportState.CANCELLED: frozenset(),
    ImportState.FAILED: frozenset({ImportState.IDLE}),
}

ACTIVE_STATES = frozenset({
    ImportState.READING,
    ImportState.EXTRACTING,
})

TERMINAL_STATES = frozenset({
    ImportState.CONFIRMED,
    ImportState.CANCELLED,
    ImportState.FAILED,
})


class FileKind(str, Enum):
    """How an uploaded file is read."""
    SPREADSHEET = "spreadsheet"  # parsed locally with column heuristics
    DOCUMENT = "document"        # rasterized, then sent to the oracle
    IMAGE = "image"              # sent to the oracle as-is


class ValidationIssue(BaseModel):
    """A single review issue found in an import preview."""

    field: str = Field(
        ...,
        description="Record/field with the issue, e.g. 'accounts[0].balance'"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'zero_balance', 'possible_duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ImportPreview(BaseModel):
    """
    Everything one import attempt extracted.

    Shown to the user without touching the ledger.
    """

    preview_id: UUID = Field(default_factory=uuid4)
    source: FileKind
    filename: str
    accounts: list[AccountDraft] = Field(default_factory=list)
    transactions: list[TransactionDraft] = Field(default_factory=list)

    # Rates found inside the file itself (spreadsheet rate cells)
    exchange_rates: dict[str, Decimal] = Field(default_factory=dict)

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.accounts and not self.transactions

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]


class ImportSession(BaseModel):
    """
    One import attempt, from file pick to confirm/cancel/failure.

    The UI keeps the session between reruns; the flow owns every
    state change.
    """

    session_id: UUID = Field(default_factory=uuid4)
    correlation_id: UUID = Field(default_factory=uuid4)
    started_at: datetime = Field(default_factory=datetime.utcnow)

    filename: Optional[str] = None
    file_kind: Optional[FileKind] = None
    state: ImportState = ImportState.IDLE
    status_message: str = ""

    preview: Optional[ImportPreview] = None
    error_message: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def can_confirm(self) -> bool:
        return self.state == ImportState.PREVIEWING and self.preview is not None
