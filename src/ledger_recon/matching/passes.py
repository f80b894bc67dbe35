"""
Matching passes for transaction reconciliation.
Each pass implements one matching rule; the engine runs them in order.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Optional

from ..config import MatchSettings
from ..models.transaction import MatchKind, Transaction, TransactionSource
from .amount_index import AmountIndex
from .similarity import SimilarityScorer
from .state import ClaimState
from .subset_sum import find_subset_sum


def days_between(a: Transaction, b: Transaction) -> int:
    """Absolute calendar-day difference between two transactions."""
    return abs((a.date - b.date).days)


@dataclass
class PassContext:
    """Shared, read-mostly inputs for every pass of one run."""

    bank: list[Transaction]  # date-sorted
    ledger: list[Transaction]  # date-sorted
    ledger_index: AmountIndex
    state: ClaimState
    scorer: SimilarityScorer
    settings: MatchSettings
    should_cancel: Optional[Callable[[], bool]] = None


@dataclass
class Proposal:
    """Counterparts a pass wants to match against its anchor."""

    counterparts: list[Transaction]
    confidence: float
    reason: str


class MatchingPass(ABC):
    """Abstract base class for matching passes."""

    name: str = "pass"
    kind: MatchKind = MatchKind.EXACT
    # Side whose items are iterated as anchors
    anchor_source: TransactionSource = TransactionSource.BANK

    def anchors(self, ctx: PassContext) -> list[Transaction]:
        """Anchor transactions in iteration order."""
        if self.anchor_source is TransactionSource.BANK:
            return ctx.bank
        return ctx.ledger

    @abstractmethod
    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        """
        Look for a match for one unclaimed anchor.

        Args:
            anchor: Transaction to match
            ctx: Run context (claim state is read, never written here)

        Returns:
            Proposal to accept, or None
        """
        pass


class IndexedPass(MatchingPass):
    """One-to-one pass drawing ledger candidates from the amount index."""

    def candidates(
        self, anchor: Transaction, ctx: PassContext, max_days: int
    ) -> list[tuple[Transaction, int]]:
        """Unclaimed, same-polarity ledger items near the anchor's amount and date."""
        found = []
        for txn in ctx.ledger_index.candidates(anchor.amount):
            if txn.type is not anchor.type or ctx.state.is_claimed(txn):
                continue
            days = days_between(anchor, txn)
            if days <= max_days:
                found.append((txn, days))
        return found


class ReferenceIdPass(IndexedPass):
    """
    Same amount and a shared reference identifier.

    Dates may be far apart (cheque written vs. cheque cleared), so this pass
    uses the widest window of all.
    """

    name = "reference_id"

    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        window = ctx.settings.reference_window_days
        for txn, _ in self.candidates(anchor, ctx, window):
            if ctx.scorer.share_reference(anchor.description, txn.description):
                return Proposal(
                    counterparts=[txn],
                    confidence=ctx.settings.passes.reference_confidence,
                    reason="Matched by Amount & Reference ID",
                )
        return None


class ExactDatePass(IndexedPass):
    """Same amount on the same day; the most similar description wins."""

    name = "exact_date"

    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        same_day = [txn for txn, days in self.candidates(anchor, ctx, 0)]
        if not same_day:
            return None

        scored = [(ctx.scorer.score(anchor.description, t.description), t) for t in same_day]
        # First candidate wins ties
        best_score, best = max(scored, key=lambda pair: pair[0])

        passes = ctx.settings.passes
        if best_score > passes.perfect_match_similarity:
            reason = "Perfect Match"
        else:
            reason = "Matched by Amount & Exact Date"
        return Proposal([best], passes.exact_date_confidence, reason)


class StrictWindowPass(IndexedPass):
    """Same amount within a few days, ranked by text then by date."""

    name = "strict_window"

    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        settings = ctx.settings
        passes = settings.passes
        nearby = self.candidates(anchor, ctx, settings.strict_window_days)
        if not nearby:
            return None

        scored = [
            (ctx.scorer.score(anchor.description, txn.description), days, txn)
            for txn, days in nearby
        ]

        def compare(a, b) -> int:
            # Clear text difference decides; otherwise the closer date
            if abs(a[0] - b[0]) > passes.strict_tie_break:
                return -1 if a[0] > b[0] else 1
            return a[1] - b[1]

        score, days, best = sorted(scored, key=cmp_to_key(compare))[0]

        if score < passes.strict_min_similarity and days > passes.strict_close_days:
            return None

        if score >= passes.strong_text_similarity:
            reason = "Strong Text & Nearby Date"
        else:
            reason = "Amount & Nearby Date"
        return Proposal([best], passes.strict_window_confidence, reason)


class FuzzyPass(IndexedPass):
    """Same amount within the loose window, text similarity with a date penalty."""

    name = "fuzzy"
    kind = MatchKind.FUZZY

    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        settings = ctx.settings
        window = settings.loose_window_days
        nearby = self.candidates(anchor, ctx, window)
        if not nearby:
            return None

        weight = settings.passes.date_penalty_weight
        scored = []
        for txn, days in nearby:
            raw = ctx.scorer.score(anchor.description, txn.description)
            penalized = raw - (days / window) * weight
            scored.append((penalized, raw, days, txn))

        # Stable: earlier candidates win ties
        penalized, raw, days, best = sorted(scored, key=lambda s: s[0], reverse=True)[0]

        if raw < settings.fuzzy_threshold:
            return None

        return Proposal(
            counterparts=[best],
            confidence=min(1.0, max(0.0, penalized)),
            reason=f"Fuzzy Match ({raw * 100:.0f}% text sim, {days}d offset)",
        )


class CombinationPass(MatchingPass):
    """
    Several items on one side summing to a single item on the other.

    The pool is the unclaimed, same-polarity opposite side within the strict
    window, each item no larger than the anchor, closest dates first.
    """

    def evaluate(self, anchor: Transaction, ctx: PassContext) -> Optional[Proposal]:
        settings = ctx.settings
        opposite = ctx.ledger if self.anchor_source is TransactionSource.BANK else ctx.bank

        pool = [
            txn
            for txn in opposite
            if txn.type is anchor.type
            and ctx.state.is_free(txn)
            and days_between(anchor, txn) <= settings.strict_window_days
            and txn.amount <= anchor.amount
        ]
        if len(pool) < 2:
            return None
        pool.sort(key=lambda t: days_between(anchor, t))

        subset = find_subset_sum(
            pool,
            target_cents=anchor.amount_cents,
            max_depth=settings.max_combination_depth,
            tolerance_cents=settings.amount_tolerance_cents,
            should_cancel=ctx.should_cancel,
        )
        if subset is None:
            return None

        return Proposal(
            counterparts=subset,
            confidence=settings.passes.split_merge_confidence,
            reason=self.describe(len(subset)),
        )

    @abstractmethod
    def describe(self, count: int) -> str:
        pass


class SplitPass(CombinationPass):
    """One bank item covering several ledger items."""

    name = "split"
    kind = MatchKind.SPLIT
    anchor_source = TransactionSource.BANK

    def describe(self, count: int) -> str:
        return f"Split: 1 Bank Item matches {count} Ledger Items"


class MergePass(CombinationPass):
    """Several bank items posted as one ledger item."""

    name = "merge"
    kind = MatchKind.MERGE
    anchor_source = TransactionSource.LEDGER

    def describe(self, count: int) -> str:
        return f"Merge: {count} Bank Items match 1 Ledger Item"


def build_passes(settings: MatchSettings) -> list[MatchingPass]:
    """
    Passes in the order they must run.

    Later passes only see what earlier ones left unclaimed, so the order runs
    from strongest evidence to weakest.
    """
    passes: list[MatchingPass] = [
        ReferenceIdPass(),
        ExactDatePass(),
        StrictWindowPass(),
        FuzzyPass(),
    ]
    if settings.max_combination_depth > 0:
        passes.extend([SplitPass(), MergePass()])
    return passes
