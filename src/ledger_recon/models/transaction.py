"""Data models for reconciliation transactions and results."""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Optional


class TransactionSource(Enum):
    """Which side of the reconciliation the transaction came from."""

    BANK = "bank"
    LEDGER = "ledger"


class TransactionType(Enum):
    """Transaction polarity."""

    CREDIT = "credit"  # Money in
    DEBIT = "debit"  # Money out


class MatchKind(Enum):
    """Shape of a match group."""

    EXACT = "exact"
    FUZZY = "fuzzy"
    SPLIT = "split-one-to-many"  # One bank item, many ledger items
    MERGE = "merge-many-to-one"  # Many bank items, one ledger item


@dataclass(frozen=True)
class Transaction:
    """
    Normalized transaction record shared by both sides of the reconciliation.

    Records are produced once by ingestion and never mutated afterwards; the
    matching engine tracks its own state separately.
    """

    # Unique identifier within its side
    id: str

    # Calendar date, no time of day
    date: date

    # Free-text description
    description: str

    # Amount (always positive, type indicates direction)
    amount: Decimal

    # Transaction type (credit/debit)
    type: TransactionType

    # Side of the reconciliation
    source: TransactionSource

    # Original raw row for audit trail
    raw_data: Optional[dict[str, Any]] = field(
        default=None, compare=False, hash=False, repr=False
    )

    @property
    def amount_cents(self) -> int:
        """Amount quantized to integer minor units."""
        return to_cents(self.amount)


@dataclass(frozen=True)
class MatchGroup:
    """Bank and ledger transactions judged to be the same economic event."""

    id: str
    bank: tuple[Transaction, ...]
    ledger: tuple[Transaction, ...]
    confidence: float  # 0.0 to 1.0
    reason: str
    kind: MatchKind

    @property
    def bank_total(self) -> Decimal:
        """Sum of all bank amounts in the group."""
        return sum((t.amount for t in self.bank), Decimal("0"))

    @property
    def ledger_total(self) -> Decimal:
        """Sum of all ledger amounts in the group."""
        return sum((t.amount for t in self.ledger), Decimal("0"))

    @property
    def amount_variance(self) -> Decimal:
        return self.bank_total - self.ledger_total


@dataclass
class ReconciliationStats:
    """Counts and totals derived from a reconciliation run."""

    total_bank: int
    total_ledger: int
    matched_bank_count: int
    matched_ledger_count: int
    unmatched_bank_count: int
    unmatched_ledger_count: int

    # Match breakdown by kind
    matches_by_kind: dict[str, int] = field(default_factory=dict)

    # Amount totals
    bank_total_credits: Decimal = Decimal("0")
    bank_total_debits: Decimal = Decimal("0")
    ledger_total_credits: Decimal = Decimal("0")
    ledger_total_debits: Decimal = Decimal("0")

    @property
    def total_items(self) -> int:
        return self.total_bank + self.total_ledger

    @property
    def matched_items(self) -> int:
        return self.matched_bank_count + self.matched_ledger_count

    @property
    def match_rate(self) -> float:
        """Percentage of all items (both sides) that ended up in a match group."""
        if self.total_items == 0:
            return 0.0
        return (self.matched_items / self.total_items) * 100

    @property
    def bank_net_change(self) -> Decimal:
        """Net change from bank transactions (credits - debits)."""
        return self.bank_total_credits - self.bank_total_debits

    @property
    def ledger_net_change(self) -> Decimal:
        """Net change from ledger transactions (credits - debits)."""
        return self.ledger_total_credits - self.ledger_total_debits


@dataclass
class ReconciliationResult:
    """Outcome of a single reconciliation run."""

    matches: list[MatchGroup]
    unmatched_bank: list[Transaction]
    unmatched_ledger: list[Transaction]
    stats: ReconciliationStats

    # Run metadata
    run_id: str = ""
    mode: str = "accuracy"
    processing_time_seconds: float = 0.0


def to_cents(amount: Decimal) -> int:
    """Round a decimal amount half-up to integer cents."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
