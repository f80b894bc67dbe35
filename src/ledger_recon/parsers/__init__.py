"""Parsers for bank statement and ledger files."""

from .csv_parser import CSVTransactionParser, parse_amount, parse_date

__all__ = ["CSVTransactionParser", "parse_amount", "parse_date"]
