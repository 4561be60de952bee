"""
Spreadsheet Asset Parser

Turns the first sheet of an .xlsx (or a .csv) into account drafts using
local heuristics only; spreadsheets never go to the oracle.

Two layouts are recognised:

MATRIX TEMPLATE ("BANK AC"):
    One header row with a "BANK AC" cell and one column per currency
    code (HKD, CNY, USD, ... and CNH, which is booked as CNY). Every
    non-zero cell becomes an account. Parsing stops at the first
    Total/Balance row.

GENERIC LIST:
    A header row found by multilingual keywords, then one account per
    row with name, balance and optional currency columns.

Either way, an exchange-rate cell ("Rate"/"汇率" with the value below,
or "HKD/CNH"/"HKD/CNY" with the value to the right or below) is picked
up as the CNY rate. A rate below 1 is read as HKD->CNY and inverted.

Balances follow the lenient numeric rule. Zero balances are skipped;
negative balances are kept as liabilities.
"""

import csv
import io
import re
import zipfile
from decimal import Decimal
from typing import Any, Optional, Sequence

import structlog
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import BaseModel, Field

from wealthdash.models.ledger import (
    ANCHOR_CURRENCY,
    AccountDraft,
    Currency,
)
from wealthdash.services.parsing.classifiers import guess_account_type, guess_currency
from wealthdash.services.parsing.errors import EmptyFileError, ParseError
from wealthdash.validation.coercion import coerce_currency, parse_amount


logger = structlog.get_logger(__name__)

Row = Sequence[Any]

MATRIX_METHOD = "Matrix Template (BANK AC)"
GENERIC_METHOD = "Generic List Mode"

_HEADER_ROW = re.compile(r"NAME|ACCOUNT|BALANCE|AMOUNT|账户|余额")
_MATRIX_MARKER = "BANK AC"
_MATRIX_STOP = re.compile(r"Total|Balance|汇总|合计")
_TOTAL_ROW = re.compile(r"^(SUB)?TOTAL\b|汇总|合计", re.IGNORECASE)

NAME_KEYWORDS = ["name", "account", "item", "账户", "名称"]
BALANCE_KEYWORDS = ["balance", "amount", "value", "余额"]
CURRENCY_KEYWORDS = ["currency", "curr", "type", "币种"]

_RATE_LABELS = {"RATE", "汇率"}
_RATE_PAIRS = ("HKD/CNH", "HKD/CNY")

# Header labels in a matrix sheet that name a currency column
_MATRIX_CURRENCY_LABELS = {code: Currency(code) for code in Currency.__members__}
_MATRIX_CURRENCY_LABELS.update({"CNH": Currency.CNY, "RMB": Currency.CNY})


class SpreadsheetResult(BaseModel):
    """What a spreadsheet yielded."""

    accounts: list[AccountDraft] = Field(default_factory=list)
    exchange_rates: dict[str, Decimal] = Field(default_factory=dict)
    method: str


def _text(cell: Any) -> str:
    if cell is None:
        return ""
    return str(cell).strip()


def _cell(row: Row, index: int) -> Any:
    if index < 0 or index >= len(row):
        return None
    return row[index]


def _is_blank(row: Row) -> bool:
    return all(_text(c) == "" for c in row)


# =============================================================================
# READING
# =============================================================================

def _read_xlsx(data: bytes) -> list[list[Any]]:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise ParseError(f"Could not open spreadsheet: {e}")

    try:
        sheet = workbook.worksheets[0]
        return [list(row) for row in sheet.iter_rows(values_only=True)]
    finally:
        workbook.close()


def _read_csv(data: bytes) -> list[list[Any]]:
    # Bank exports from mainland China are frequently GB18030
    for encoding in ("utf-8-sig", "gb18030"):
        try:
            text = data.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise ParseError("Could not decode CSV file")

    try:
        return [row for row in csv.reader(io.StringIO(text))]
    except csv.Error as e:
        raise ParseError(f"Could not read CSV file: {e}")


def read_rows(data: bytes, filename: str) -> list[list[Any]]:
    """
    Read the first sheet of a spreadsheet into rows of raw cell values.

    Raises:
        ParseError: The file is not a readable .xlsx or .csv
    """
    name = filename.lower()
    if name.endswith(".csv"):
        return _read_csv(data)
    if name.endswith((".xlsx", ".xlsm")):
        return _read_xlsx(data)
    raise ParseError(f"Unsupported spreadsheet format: {filename}")


# =============================================================================
# PARSING
# =============================================================================

class SpreadsheetParser:
    """
    Heuristic asset-list parser.

    Stateless; one instance can parse any number of sheets.
    """

    def parse(self, rows: Sequence[Row]) -> SpreadsheetResult:
        """
        Extract account drafts and any exchange rate from sheet rows.

        Raises:
            EmptyFileError: Fewer than two non-blank rows, or no usable assets
        """
        if sum(1 for row in rows if row and not _is_blank(row)) < 2:
            raise EmptyFileError("Spreadsheet seems empty.")

        rates = self.detect_rates(rows)

        matrix_row = self._find_matrix_header(rows)
        if matrix_row is not None:
            method = MATRIX_METHOD
            accounts = self._parse_matrix(rows, matrix_row)
        else:
            method = GENERIC_METHOD
            accounts = self._parse_generic(rows)

        logger.info(
            "spreadsheet_parsed",
            method=method,
            account_count=len(accounts),
            rate_found=bool(rates),
        )

        if not accounts:
            raise EmptyFileError("No valid assets found in spreadsheet.")

        return SpreadsheetResult(accounts=accounts, exchange_rates=rates, method=method)

    # -------------------------------------------------------------------------
    # Exchange rate cells
    # -------------------------------------------------------------------------

    def detect_rates(self, rows: Sequence[Row]) -> dict[str, Decimal]:
        """Find the first rate cell; returns {"CNY": rate} or {}."""
        found: Optional[Decimal] = None

        for r, row in enumerate(rows):
            below = rows[r + 1] if r + 1 < len(rows) else None
            for c, cell in enumerate(row):
                label = _text(cell).upper()

                if label in _RATE_LABELS and below is not None:
                    value = parse_amount(_cell(below, c))
                    if value > 0:
                        found = value
                        break

                if any(pair in label for pair in _RATE_PAIRS):
                    value = parse_amount(_cell(row, c + 1))
                    if value <= 0 and below is not None:
                        value = parse_amount(_cell(below, c))
                    if value > 0:
                        found = value
                        break
            if found is not None:
                break

        if found is None:
            return {}
        if found < 1:
            found = Decimal("1") / found
        return {Currency.CNY.value: found}

    # -------------------------------------------------------------------------
    # Matrix template
    # -------------------------------------------------------------------------

    def _find_matrix_header(self, rows: Sequence[Row]) -> Optional[int]:
        for index, row in enumerate(rows):
            if any(_MATRIX_MARKER in _text(c).upper() for c in row):
                return index
        return None

    def _parse_matrix(self, rows: Sequence[Row], header_index: int) -> list[AccountDraft]:
        header = [_text(c).upper() for c in rows[header_index]]
        name_col = next(i for i, label in enumerate(header) if _MATRIX_MARKER in label)
        currency_cols = [
            (i, label, _MATRIX_CURRENCY_LABELS[label])
            for i, label in enumerate(header)
            if label in _MATRIX_CURRENCY_LABELS
        ]

        drafts = []
        for row in rows[header_index + 1:]:
            if not row:
                continue
            name = _text(_cell(row, name_col))
            if not name:
                continue
            if _MATRIX_STOP.search(name):
                break
            if name == "-":
                continue

            held = [
                (label, currency, parse_amount(_cell(row, col)))
                for col, label, currency in currency_cols
            ]
            held = [(label, currency, value) for label, currency, value in held if value != 0]
            account_type = guess_account_type(name)

            for label, currency, value in held:
                # Several currencies on one row need distinct names to survive the name upsert
                if len(held) == 1 or currency == ANCHOR_CURRENCY:
                    display = name
                else:
                    display = f"{name} ({label})"
                drafts.append(AccountDraft(
                    name=display[:200],
                    balance=value,
                    currency=currency,
                    type=account_type,
                ))

        return drafts

    # -------------------------------------------------------------------------
    # Generic list
    # -------------------------------------------------------------------------

    @staticmethod
    def _find_column(header: list[str], keywords: list[str], exclude: set[int]) -> int:
        for index, label in enumerate(header):
            if index in exclude:
                continue
            if any(keyword in label for keyword in keywords):
                return index
        return -1

    def _locate_columns(self, rows: Sequence[Row], start: int) -> tuple[int, int, int]:
        header = [_text(c).lower() for c in rows[start]]

        name_col = self._find_column(header, NAME_KEYWORDS, set())
        if name_col == -1:
            name_col = 0

        balance_col = self._find_column(header, BALANCE_KEYWORDS, {name_col})
        if balance_col == -1 and start + 1 < len(rows):
            # No balance header: take the first positive number in the first data row
            first = rows[start + 1]
            balance_col = next(
                (
                    i for i, cell in enumerate(first)
                    if i != name_col and parse_amount(cell) > 0
                ),
                -1,
            )
        if balance_col == -1:
            balance_col = 1

        currency_col = self._find_column(header, CURRENCY_KEYWORDS, {name_col, balance_col})
        return name_col, balance_col, currency_col

    def _parse_generic(self, rows: Sequence[Row]) -> list[AccountDraft]:
        start = next(
            (
                i for i, row in enumerate(rows)
                if any(_HEADER_ROW.search(_text(c).upper()) for c in row)
            ),
            0,
        )
        name_col, balance_col, currency_col = self._locate_columns(rows, start)

        drafts = []
        for row in rows[start + 1:]:
            if not row:
                continue
            name = _text(_cell(row, name_col))
            if not name or _TOTAL_ROW.search(name):
                continue

            raw_balance = _cell(row, balance_col)
            balance = parse_amount(raw_balance)
            if balance == 0:
                continue

            currency_text = _text(_cell(row, currency_col)) if currency_col != -1 else ""
            currency = coerce_currency(currency_text, default=None)
            if currency is None:
                context = " ".join([name, currency_text, _text(raw_balance)])
                currency = guess_currency(context)

            drafts.append(AccountDraft(
                name=name[:200],
                balance=balance,
                currency=currency,
                type=guess_account_type(name),
            ))

        return drafts
