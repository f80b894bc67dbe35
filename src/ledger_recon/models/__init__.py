"""Data models for reconciliation."""

from .transaction import (
    Transaction,
    TransactionSource,
    TransactionType,
    MatchKind,
    MatchGroup,
    ReconciliationStats,
    ReconciliationResult,
    to_cents,
)

__all__ = [
    "Transaction",
    "TransactionSource",
    "TransactionType",
    "MatchKind",
    "MatchGroup",
    "ReconciliationStats",
    "ReconciliationResult",
    "to_cents",
]
