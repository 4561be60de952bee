"""
Workbook Export

Builds the downloadable WealthDash_Report.xlsx:
- "Summary": the totals buckets in the chosen base currency
- "Source Data": one row per account, as held in the ledger

Balances are written as numbers so the sheet can be re-imported.
"""

import io
from typing import Iterable, Mapping

from openpyxl import Workbook
from openpyxl.styles import Font

from wealthdash.ledger.aggregation import compute_totals
from wealthdash.ledger.conversion import CurrencyLike, to_base
from wealthdash.models.ledger import ANCHOR_CURRENCY, Account


REPORT_FILENAME = "WealthDash_Report.xlsx"
REPORT_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

SOURCE_COLUMNS = [
    ("ID", 16),
    ("Account", 30),
    ("Type", 15),
    ("Currency", 10),
    ("Balance", 15),
]


def _bold_header(sheet, headers: list[str]) -> None:
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = Font(bold=True)


def export_workbook(
    accounts: Iterable[Account],
    rates: Mapping[str, object],
    base_currency: CurrencyLike = ANCHOR_CURRENCY,
) -> bytes:
    """
    Render the ledger's accounts into an .xlsx document.

    Returns:
        The workbook bytes, ready for a download button
    """
    accounts = list(accounts)
    totals = compute_totals(accounts, rates, base_currency)
    base = totals.base_currency.value

    workbook = Workbook()

    summary = workbook.active
    summary.title = "Summary"
    _bold_header(summary, ["Metric", f"Value ({base})"])
    for label, value in (
        ("Net Worth", totals.net_worth),
        ("HKD Cash", totals.anchor_cash),
        ("Foreign Cash", totals.foreign_cash),
        ("Investments", totals.investments),
        ("Liabilities", totals.liabilities),
    ):
        summary.append([label, float(value)])
    summary.column_dimensions["A"].width = 18
    summary.column_dimensions["B"].width = 18

    data = workbook.create_sheet("Source Data")
    _bold_header(data, [name for name, _ in SOURCE_COLUMNS] + [f"Value ({base})"])
    for account in accounts:
        data.append([
            account.id,
            account.name,
            account.type.value,
            account.currency.value,
            float(account.balance),
            float(to_base(account.balance, account.currency, rates, base)),
        ])
    for letter, (_, width) in zip("ABCDE", SOURCE_COLUMNS):
        data.column_dimensions[letter].width = width
    data.column_dimensions["F"].width = 15

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
