"""Bank statement to ledger reconciliation."""

__version__ = "0.1.0"

from .config import ReconConfig, load_config  # noqa: E402
from .matching.engine import ReconciliationEngine, reconcile  # noqa: E402
from .models.transaction import (  # noqa: E402
    MatchGroup,
    MatchKind,
    ReconciliationResult,
    Transaction,
    TransactionSource,
    TransactionType,
)

__all__ = [
    "__version__",
    "ReconConfig",
    "load_config",
    "ReconciliationEngine",
    "reconcile",
    "MatchGroup",
    "MatchKind",
    "ReconciliationResult",
    "Transaction",
    "TransactionSource",
    "TransactionType",
]
