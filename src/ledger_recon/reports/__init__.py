"""Exports of reconciliation results."""

from .csv_export import CSVExporter, EXPORT_COLUMNS, result_to_frame
from .excel_generator import ExcelReportGenerator

__all__ = ["CSVExporter", "EXPORT_COLUMNS", "result_to_frame", "ExcelReportGenerator"]
