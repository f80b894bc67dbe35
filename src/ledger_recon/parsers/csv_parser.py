"""
CSV transaction parser for bank statements and ledger exports.
Detects the header row and key columns, then converts rows to transactions.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional
import csv
import logging
import re

import pandas as pd

from ..config import InputConfig, ReconConfig
from ..models.transaction import Transaction, TransactionSource, TransactionType
from ..utils.exceptions import IngestionError

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DATE_PARTS = re.compile(r"[/\-.]")
_AMOUNT_JUNK = re.compile(r"[^0-9.\-]")


def normalize_header(header: str) -> str:
    """Lowercase a header and strip everything but letters and digits."""
    return re.sub(r"[^a-z0-9]", "", str(header).lower())


def parse_amount(value) -> Optional[Decimal]:
    """
    Parse a signed amount from a CSV cell.

    Handles currency symbols, thousands separators and accounting-style
    negatives such as "(500.00)".

    Returns:
        Signed Decimal, or None if the cell holds no number
    """
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        if pd.isna(value):
            return None
        return Decimal(str(value))

    text = str(value).strip()
    if not text:
        return None

    negative = text.startswith("(") and text.endswith(")")
    cleaned = _AMOUNT_JUNK.sub("", text)
    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return -abs(amount) if negative else amount


def parse_date(value) -> Optional[date]:
    """
    Parse a calendar date from a CSV cell.

    ISO dates are taken as-is. For slash, dash or dot separated dates with
    the year last, a first part above 12 means day-first; otherwise
    month-first is assumed. Anything else goes through pandas.

    Returns:
        The date, or None if it cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        iso = _ISO_DATE.match(text)
        if iso:
            return date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

        parts = _DATE_PARTS.split(text)
        if len(parts) == 3 and all(p.strip().isdigit() for p in parts):
            n1, n2, n3 = (int(p) for p in parts)
            if n1 > 1000:
                return date(n1, n2, n3)
            if n3 > 1000:
                if n1 > 12:
                    return date(n3, n2, n1)
                return date(n3, n1, n2)
    except ValueError:
        return None

    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.date()


class CSVTransactionParser:
    """
    Parser for bank statement and ledger CSV exports.

    Column layouts vary between banks and accounting systems, so the header
    row and the date, description and amount columns are detected from header
    names rather than configured per file.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config or ReconConfig()
        self.input_config: InputConfig = self.config.input

    def parse_file(self, file_path: Path, source: TransactionSource) -> list[Transaction]:
        """
        Parse a CSV file and return transactions for one side.

        Args:
            file_path: Path to the CSV file
            source: Which side the file belongs to

        Returns:
            List of transactions

        Raises:
            IngestionError: If the file cannot be read or has no date column
        """
        logger.info(f"Parsing {source.value} CSV file: {file_path}")

        try:
            width = self._max_width(file_path)
            if width == 0:
                raise IngestionError(f"File is empty: {file_path}")
            df = pd.read_csv(
                file_path,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding=self.input_config.encoding,
                sep=self.input_config.delimiter,
                engine="python",
            )
        except IngestionError:
            raise
        except Exception as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise IngestionError(f"Failed to read CSV file {file_path}: {e}") from e

        transactions = self.parse_frame(df, source)
        logger.info(f"Extracted {len(transactions)} {source.value} transactions")
        return transactions

    def _max_width(self, file_path: Path) -> int:
        """Widest line in the file; preamble lines are often narrower than the table."""
        with open(file_path, "r", encoding=self.input_config.encoding, newline="") as f:
            reader = csv.reader(f, delimiter=self.input_config.delimiter)
            return max((len(line) for line in reader), default=0)

    def parse_frame(self, df: pd.DataFrame, source: TransactionSource) -> list[Transaction]:
        """
        Convert a header-less DataFrame of raw cells into transactions.

        Args:
            df: Raw cells, one CSV line per row, header row included
            source: Which side the rows belong to

        Returns:
            List of transactions (rows with no date or zero amount are skipped)
        """
        if df.empty:
            raise IngestionError("File is empty")

        rows = df.fillna("").astype(str).values.tolist()
        header_idx = self._find_header_row(rows)
        headers = [str(h).strip() for h in rows[header_idx]]
        columns = self._detect_columns(headers)

        if columns["date"] is None:
            raise IngestionError("Could not detect a 'Date' column")
        if columns["amount"] is None and (
            columns["debit"] is None or columns["credit"] is None
        ):
            raise IngestionError("Could not detect an amount or debit/credit columns")

        transactions: list[Transaction] = []
        for idx in range(header_idx + 1, len(rows)):
            row = rows[idx]
            if sum(1 for cell in row if cell.strip()) < 2:
                continue
            txn = self._normalize_row(row, headers, columns, idx, source)
            if txn:
                transactions.append(txn)

        return transactions

    def _find_header_row(self, rows: list[list[str]]) -> int:
        """First row mentioning a date and an amount-like column, else row 0."""
        for i, row in enumerate(rows[: self.input_config.header_scan_rows]):
            cells = [cell.lower() for cell in row]
            has_date = any("date" in c for c in cells)
            has_amount = any(
                k in c for c in cells for k in ("amount", "debit", "credit", "value")
            )
            if has_date and has_amount:
                return i
        return 0

    def _detect_columns(self, headers: list[str]) -> dict[str, Optional[int]]:
        """Locate each role's column; a column is used for at most one role."""
        normalized = [normalize_header(h) for h in headers]
        cfg = self.input_config
        taken: set[int] = set()

        def find(keywords: list[str]) -> Optional[int]:
            for i, header in enumerate(normalized):
                if i in taken or not header:
                    continue
                if any(_keyword_matches(header, k) for k in keywords):
                    taken.add(i)
                    return i
            return None

        # Order matters: debit/credit before the generic amount column
        columns = {"date": find(cfg.date_keywords)}
        columns["description"] = find(cfg.description_keywords)
        columns["debit"] = find(cfg.debit_keywords)
        columns["credit"] = find(cfg.credit_keywords)
        columns["amount"] = find(cfg.amount_keywords)
        logger.debug(f"Detected columns: {columns}")
        return columns

    def _normalize_row(
        self,
        row: list[str],
        headers: list[str],
        columns: dict[str, Optional[int]],
        idx: int,
        source: TransactionSource,
    ) -> Optional[Transaction]:
        """
        Convert one raw row to a Transaction.

        Returns:
            Transaction, or None if the row has no usable date or amount
        """

        def cell(role: str) -> str:
            col = columns[role]
            if col is None or col >= len(row):
                return ""
            return row[col]

        txn_date = parse_date(cell("date"))
        if not txn_date:
            logger.warning(f"Row {idx}: Invalid date, skipping")
            return None

        if columns["debit"] is not None and columns["credit"] is not None:
            debit_val = parse_amount(cell("debit")) or Decimal("0")
            credit_val = parse_amount(cell("credit")) or Decimal("0")
            if debit_val > 0:
                amount, txn_type = debit_val, TransactionType.DEBIT
            elif credit_val > 0:
                amount, txn_type = credit_val, TransactionType.CREDIT
            else:
                amount, txn_type = Decimal("0"), TransactionType.DEBIT
        else:
            value = parse_amount(cell("amount")) or Decimal("0")
            amount = abs(value)
            txn_type = TransactionType.DEBIT if value < 0 else TransactionType.CREDIT

        if amount == 0:
            logger.warning(f"Row {idx}: No valid amount found, skipping")
            return None

        description = " ".join(cell("description").split()) or "No Description"

        return Transaction(
            id=f"{source.value}-{idx:05d}",
            date=txn_date,
            description=description,
            amount=amount,
            type=txn_type,
            source=source,
            raw_data=dict(zip(headers, row)),
        )


def _keyword_matches(header: str, keyword: str) -> bool:
    # Short abbreviations ("dt", "dr", "amt") must match the whole header
    if len(keyword) <= 3:
        return header == keyword
    return keyword in header
