"""
Excel report generator for reconciliation results.
Creates a workbook with a summary sheet and one table per result section.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional
import logging

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Border, Side
from openpyxl.worksheet.worksheet import Worksheet

from ..config import ReconConfig, SheetConfig
from ..models.transaction import (
    MatchGroup,
    MatchKind,
    ReconciliationResult,
    Transaction,
)
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

# Style definitions
HEADER_FONT = Font(color="FFFFFF", bold=True)
MATCHED_HEADER_FILL = PatternFill(start_color="16A34A", end_color="16A34A", fill_type="solid")
BANK_HEADER_FILL = PatternFill(start_color="2563EB", end_color="2563EB", fill_type="solid")
LEDGER_HEADER_FILL = PatternFill(start_color="EA580C", end_color="EA580C", fill_type="solid")
FUZZY_FILL = PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid")
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
AMOUNT_FORMAT = "#,##0.00"


class ExcelReportGenerator:
    """Generates the reconciliation workbook."""

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the report generator.

        Args:
            config: Application configuration
        """
        self.config = config or ReconConfig()
        self.sheet_config = self.config.output.sheets

    def generate_report(self, result: ReconciliationResult, output_path: Path) -> Path:
        """
        Generate the complete reconciliation report.

        Args:
            result: Reconciliation result
            output_path: Path for output file

        Returns:
            Path to generated report

        Raises:
            ReportGenerationError: If the workbook cannot be built or saved
        """
        logger.info(f"Generating Excel report: {output_path}")

        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        sheets = self.sheet_config
        if sheets.summary.enabled:
            self._create_summary_sheet(wb, sheets.summary, result)
        if sheets.matched.enabled:
            self._create_matched_sheet(wb, sheets.matched, result.matches)
        if sheets.unmatched_bank.enabled:
            self._create_unmatched_sheet(
                wb, sheets.unmatched_bank, result.unmatched_bank, BANK_HEADER_FILL
            )
        if sheets.unmatched_ledger.enabled:
            self._create_unmatched_sheet(
                wb, sheets.unmatched_ledger, result.unmatched_ledger, LEDGER_HEADER_FILL
            )

        if not wb.worksheets:
            raise ReportGenerationError("All report sheets are disabled")

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            wb.save(output_path)
        except OSError as e:
            raise ReportGenerationError(f"Failed to save report: {e}") from e

        logger.info(f"Report saved: {output_path}")
        return output_path

    def _create_summary_sheet(
        self, wb: Workbook, sheet: SheetConfig, result: ReconciliationResult
    ) -> None:
        """Create the summary sheet with key metrics."""
        stats = result.stats
        ws = wb.create_sheet(sheet.name)

        ws["A1"] = "Reconciliation Report"
        ws["A1"].font = Font(size=16, bold=True)
        ws.merge_cells("A1:D1")
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}"
        ws["A2"].font = Font(italic=True, color="666666")

        sections = [
            (
                "Run",
                [
                    ("Run ID:", result.run_id),
                    ("Mode:", result.mode),
                    ("Processing Time:", f"{result.processing_time_seconds:.2f}s"),
                ],
            ),
            (
                "Match Rate",
                [
                    ("Match Rate:", f"{stats.match_rate:.1f}%"),
                    ("Total Matched Items:", stats.matched_items),
                    ("Match Groups:", len(result.matches)),
                ],
            ),
            (
                "Transaction Counts",
                [
                    ("Total Bank Transactions:", stats.total_bank),
                    ("Total Ledger Transactions:", stats.total_ledger),
                    ("Matched Bank Items:", stats.matched_bank_count),
                    ("Matched Ledger Items:", stats.matched_ledger_count),
                    ("Unmatched Bank Items:", stats.unmatched_bank_count),
                    ("Unmatched Ledger Items:", stats.unmatched_ledger_count),
                ],
            ),
            (
                "Amount Totals",
                [
                    ("Bank Total Credits:", f"{stats.bank_total_credits:,.2f}"),
                    ("Bank Total Debits:", f"{stats.bank_total_debits:,.2f}"),
                    ("Ledger Total Credits:", f"{stats.ledger_total_credits:,.2f}"),
                    ("Ledger Total Debits:", f"{stats.ledger_total_debits:,.2f}"),
                ],
            ),
            (
                "Matches by Kind",
                [(f"{kind}:", count) for kind, count in stats.matches_by_kind.items()],
            ),
        ]

        row = 4
        for title, items in sections:
            ws[f"A{row}"] = title
            ws[f"A{row}"].font = Font(bold=True)
            row += 1
            for label, value in items:
                ws[f"A{row}"] = label
                ws[f"B{row}"] = value
                row += 1
            row += 1

        ws.column_dimensions["A"].width = 30
        ws.column_dimensions["B"].width = 30

    def _create_matched_sheet(
        self, wb: Workbook, sheet: SheetConfig, matches: list[MatchGroup]
    ) -> None:
        """One row per match group."""
        ws = wb.create_sheet(sheet.name)
        headers = [
            "Match ID",
            "Kind",
            "Items",
            "Total Amount",
            "Confidence",
            "Bank IDs",
            "Ledger IDs",
            "Reason",
        ]
        self._write_headers(ws, headers, MATCHED_HEADER_FILL)

        for row_num, match in enumerate(matches, start=2):
            row_data = [
                match.id,
                match.kind.value,
                f"{len(match.bank)} Bank / {len(match.ledger)} Ledger",
                float(match.bank_total),
                round(match.confidence, 4),
                ", ".join(t.id for t in match.bank),
                ", ".join(t.id for t in match.ledger),
                match.reason,
            ]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                if col == 4:
                    cell.number_format = AMOUNT_FORMAT
                if match.kind is MatchKind.FUZZY:
                    cell.fill = FUZZY_FILL

        self._auto_fit_columns(ws)

    def _create_unmatched_sheet(
        self,
        wb: Workbook,
        sheet: SheetConfig,
        transactions: list[Transaction],
        header_fill: PatternFill,
    ) -> None:
        """Unmatched transactions of one side."""
        ws = wb.create_sheet(sheet.name)
        self._write_headers(ws, ["ID", "Date", "Description", "Type", "Amount"], header_fill)

        for row_num, txn in enumerate(transactions, start=2):
            row_data = [
                txn.id,
                txn.date,
                txn.description,
                txn.type.value,
                float(txn.amount),
            ]
            for col, value in enumerate(row_data, start=1):
                cell = ws.cell(row=row_num, column=col, value=value)
                cell.border = THIN_BORDER
                if col == 5:
                    cell.number_format = AMOUNT_FORMAT

        self._auto_fit_columns(ws)

    def _write_headers(self, ws: Worksheet, headers: list[str], fill: PatternFill) -> None:
        for col, header in enumerate(headers, start=1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.fill = fill
            cell.font = HEADER_FONT
            cell.border = THIN_BORDER

    def _auto_fit_columns(self, ws: Worksheet) -> None:
        """Auto-fit column widths based on content."""
        for column_cells in ws.columns:
            column = column_cells[0].column_letter
            max_length = max(
                (len(str(cell.value)) for cell in column_cells if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[column].width = min(max_length + 2, 50)
