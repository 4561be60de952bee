"""
Parsing Services Package

Local readers for uploaded statements: heuristic spreadsheet parsing and
PDF/image rasterization for the extraction oracle.
"""

from wealthdash.services.parsing.classifiers import (
    guess_account_type,
    guess_currency,
)
from wealthdash.services.parsing.document import (
    DocumentRasterizer,
    detect_file_kind,
)
from wealthdash.services.parsing.errors import (
    EmptyFileError,
    ParseError,
    UnsupportedFileError,
)
from wealthdash.services.parsing.spreadsheet import (
    SpreadsheetParser,
    SpreadsheetResult,
    read_rows,
)

__all__ = [
    # Classifiers
    "guess_account_type",
    "guess_currency",
    # Documents
    "DocumentRasterizer",
    "detect_file_kind",
    # Errors
    "EmptyFileError",
    "ParseError",
    "UnsupportedFileError",
    # Spreadsheets
    "SpreadsheetParser",
    "SpreadsheetResult",
    "read_rows",
]
