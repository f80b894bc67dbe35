"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    IngestionError,
    ConfigurationError,
    ReconciliationCancelled,
    ReportGenerationError,
)
from .logging_config import setup_logging, get_logger

__all__ = [
    "ReconciliationError",
    "IngestionError",
    "ConfigurationError",
    "ReconciliationCancelled",
    "ReportGenerationError",
    "setup_logging",
    "get_logger",
]
