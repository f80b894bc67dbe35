"""Flat CSV export of a reconciliation result, one row per transaction."""

from pathlib import Path
import logging

import pandas as pd

from ..models.transaction import ReconciliationResult, Transaction
from ..utils.exceptions import ReportGenerationError

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "Status",
    "Source",
    "Date",
    "Description",
    "Amount",
    "Type",
    "Match-ID",
    "Match-Reason",
]


def _row(status: str, txn: Transaction, match_id: str = "", reason: str = "") -> dict:
    return {
        "Status": status,
        "Source": txn.source.value.capitalize(),
        "Date": txn.date.isoformat(),
        "Description": txn.description,
        "Amount": f"{txn.amount:.2f}",
        "Type": txn.type.value,
        "Match-ID": match_id,
        "Match-Reason": reason,
    }


def result_to_frame(result: ReconciliationResult) -> pd.DataFrame:
    """
    Flatten a result into a DataFrame.

    Matched rows come first, group by group with bank rows before ledger rows,
    followed by unmatched bank and unmatched ledger rows.
    """
    rows = []
    for match in result.matches:
        for txn in (*match.bank, *match.ledger):
            rows.append(_row("Matched", txn, match.id, match.reason))
    rows.extend(_row("Unmatched", txn) for txn in result.unmatched_bank)
    rows.extend(_row("Unmatched", txn) for txn in result.unmatched_ledger)
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


class CSVExporter:
    """Writes the tabular export consumed by spreadsheets and downstream tools."""

    def export(self, result: ReconciliationResult, output_path: Path) -> Path:
        """
        Write the result as CSV.

        Args:
            result: Reconciliation result
            output_path: Destination file

        Returns:
            Path to the written file

        Raises:
            ReportGenerationError: If the file cannot be written
        """
        logger.info(f"Writing CSV export: {output_path}")
        frame = result_to_frame(result)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            frame.to_csv(output_path, index=False)
        except OSError as e:
            raise ReportGenerationError(f"Failed to write CSV export: {e}") from e
        logger.info(f"CSV export saved: {output_path} ({len(frame)} rows)")
        return output_path
