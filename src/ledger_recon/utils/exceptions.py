"""Custom exceptions for the reconciliation application."""


class ReconciliationError(Exception):
    """Base exception for reconciliation errors."""

    pass


class IngestionError(ReconciliationError):
    """Error reading a transaction file."""

    pass


class ConfigurationError(ReconciliationError):
    """Error in configuration."""

    pass


class ReconciliationCancelled(ReconciliationError):
    """Run aborted by the caller's cancellation check."""

    pass


class ReportGenerationError(ReconciliationError):
    """Error generating an export or report."""

    pass
