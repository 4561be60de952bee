"""Tests for the downloadable workbook."""

import io

from openpyxl import load_workbook

from wealthdash.models import DEFAULT_RATES, Currency
from wealthdash.services.report import export_workbook


class TestExportWorkbook:
    """Tests for export_workbook()."""

    def test_sheets_and_source_rows(self, sample_accounts):
        data = export_workbook(sample_accounts, DEFAULT_RATES, Currency.HKD)

        workbook = load_workbook(io.BytesIO(data))
        assert workbook.sheetnames == ["Summary", "Source Data"]

        rows = list(workbook["Source Data"].iter_rows(values_only=True))
        assert rows[0] == ("ID", "Account", "Type", "Currency", "Balance", "Value (HKD)")
        assert rows[1] == ("acc-hsbc", "HSBC Savings", "Bank", "HKD", 1000, 1000)
        assert rows[3][2] == "Investment"
        assert rows[3][5] == 1564
        assert rows[4][4] == -300
        assert len(rows) == 5

    def test_summary_in_base_currency(self, sample_accounts):
        data = export_workbook(sample_accounts, DEFAULT_RATES, Currency.HKD)

        summary = load_workbook(io.BytesIO(data))["Summary"]
        values = {row[0]: row[1] for row in summary.iter_rows(min_row=2, values_only=True)}
        assert values["Net Worth"] == 2372
        assert values["Liabilities"] == 300

    def test_empty_ledger_still_has_headers(self):
        data = export_workbook([], DEFAULT_RATES)

        sheet = load_workbook(io.BytesIO(data))["Source Data"]
        assert sheet.max_row == 1
