"""
Multi-pass matching engine for bank / ledger reconciliation.
Runs the matching passes in priority order over a per-run claim state.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence
import logging
import uuid

from ..config import ReconConfig, MatchSettings
from ..models.transaction import (
    MatchGroup,
    ReconciliationResult,
    ReconciliationStats,
    Transaction,
    TransactionSource,
    TransactionType,
)
from ..utils.exceptions import ReconciliationCancelled
from .amount_index import AmountIndex
from .passes import MatchingPass, PassContext, Proposal, build_passes
from .similarity import SimilarityScorer
from .state import ClaimState

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
CancelCheck = Callable[[], bool]

# Percent complete reported once each pass has finished
PASS_MILESTONES = {
    "reference_id": 30,
    "exact_date": 50,
    "strict_window": 70,
    "fuzzy": 85,
    "split": 92,
}


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates the matching process.

    Every pass only considers transactions no earlier pass has claimed, and
    claims are never rolled back, so each transaction ends up in at most one
    match group. Whatever is left unclaimed is reported as unmatched.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration (defaults if omitted)
        """
        self.config = config or ReconConfig()

    def reconcile(
        self,
        bank_transactions: Sequence[Transaction],
        ledger_transactions: Sequence[Transaction],
        mode: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
        should_cancel: Optional[CancelCheck] = None,
        run_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Perform reconciliation between bank and ledger transactions.

        Args:
            bank_transactions: Bank-side transactions
            ledger_transactions: Ledger-side transactions
            mode: Matching mode name ("accuracy" or "speed" by default)
            progress: Optional callback receiving percent complete
            should_cancel: Optional check polled between passes, between
                anchors and inside the subset-sum search
            run_id: Prefix for match group ids (random if omitted)

        Returns:
            Matches, unmatched transactions on each side, and statistics

        Raises:
            ConfigurationError: If the mode is unknown
            ReconciliationCancelled: If ``should_cancel`` returned True
        """
        settings = self.config.settings_for(mode)
        run_id = run_id or uuid.uuid4().hex[:8]
        start_time = datetime.now()

        logger.info(
            f"Starting reconciliation {run_id} ({settings.mode} mode): "
            f"{len(bank_transactions)} bank txns, {len(ledger_transactions)} ledger txns"
        )
        _notify(progress, 5)

        # Stable sort keeps input order for same-day items
        sorted_bank = sorted(bank_transactions, key=lambda t: t.date)
        sorted_ledger = sorted(ledger_transactions, key=lambda t: t.date)

        ctx = PassContext(
            bank=sorted_bank,
            ledger=sorted_ledger,
            ledger_index=AmountIndex(sorted_ledger),
            state=ClaimState(bank_transactions, ledger_transactions),
            scorer=SimilarityScorer(settings.scoring),
            settings=settings,
            should_cancel=should_cancel,
        )
        _notify(progress, 15)

        matches: list[MatchGroup] = []
        for matching_pass in build_passes(settings):
            _check_cancelled(should_cancel, f"before {matching_pass.name} pass")

            accepted = self._run_pass(matching_pass, ctx, run_id, len(matches))
            matches.extend(accepted)

            logger.debug(
                f"Pass {matching_pass.name}: {len(accepted)} matches, "
                f"{ctx.state.claimed_count(TransactionSource.BANK)} bank and "
                f"{ctx.state.claimed_count(TransactionSource.LEDGER)} ledger claimed"
            )
            milestone = PASS_MILESTONES.get(matching_pass.name)
            if milestone is not None:
                _notify(progress, milestone)

        result = self._build_result(
            bank_transactions, ledger_transactions, matches, ctx.state, settings
        )
        result.run_id = run_id
        result.processing_time_seconds = (datetime.now() - start_time).total_seconds()
        _notify(progress, 100)

        logger.info(
            f"Reconciliation {run_id} complete in {result.processing_time_seconds:.2f}s: "
            f"{len(matches)} matches, {len(result.unmatched_bank)} bank-only, "
            f"{len(result.unmatched_ledger)} ledger-only "
            f"({result.stats.match_rate:.1f}% matched)"
        )
        return result

    def _run_pass(
        self,
        matching_pass: MatchingPass,
        ctx: PassContext,
        run_id: str,
        offset: int,
    ) -> list[MatchGroup]:
        """
        Run one pass over its anchors, accepting matches one at a time.

        Each accepted match is claimed before the next anchor is evaluated,
        so later anchors in the same pass never see it as a candidate.
        """
        accepted: list[MatchGroup] = []

        for anchor in matching_pass.anchors(ctx):
            if ctx.state.is_claimed(anchor):
                continue
            _check_cancelled(ctx.should_cancel, f"during {matching_pass.name} pass")

            proposal = matching_pass.evaluate(anchor, ctx)
            if proposal is None:
                continue

            group = self._make_group(
                matching_pass,
                anchor,
                proposal,
                group_id=f"{run_id}-{offset + len(accepted) + 1:04d}",
            )
            ctx.state.claim(group.bank, group.ledger)
            accepted.append(group)

        return accepted

    @staticmethod
    def _make_group(
        matching_pass: MatchingPass,
        anchor: Transaction,
        proposal: Proposal,
        group_id: str,
    ) -> MatchGroup:
        if matching_pass.anchor_source is TransactionSource.BANK:
            bank, ledger = (anchor,), tuple(proposal.counterparts)
        else:
            bank, ledger = tuple(proposal.counterparts), (anchor,)

        return MatchGroup(
            id=group_id,
            bank=bank,
            ledger=ledger,
            confidence=proposal.confidence,
            reason=proposal.reason,
            kind=matching_pass.kind,
        )

    def _build_result(
        self,
        bank_transactions: Sequence[Transaction],
        ledger_transactions: Sequence[Transaction],
        matches: list[MatchGroup],
        state: ClaimState,
        settings: MatchSettings,
    ) -> ReconciliationResult:
        """Derive unmatched lists and statistics from the final claim state."""
        unmatched_bank = [t for t in bank_transactions if state.is_free(t)]
        unmatched_ledger = [t for t in ledger_transactions if state.is_free(t)]

        return ReconciliationResult(
            matches=matches,
            unmatched_bank=unmatched_bank,
            unmatched_ledger=unmatched_ledger,
            stats=summarize(
                bank_transactions,
                ledger_transactions,
                matches,
                unmatched_bank,
                unmatched_ledger,
            ),
            mode=settings.mode,
        )


def summarize(
    bank_transactions: Sequence[Transaction],
    ledger_transactions: Sequence[Transaction],
    matches: Sequence[MatchGroup],
    unmatched_bank: Sequence[Transaction],
    unmatched_ledger: Sequence[Transaction],
) -> ReconciliationStats:
    """
    Compute reconciliation statistics.

    Args:
        bank_transactions: All bank transactions
        ledger_transactions: All ledger transactions
        matches: Accepted match groups
        unmatched_bank: Bank transactions left unmatched
        unmatched_ledger: Ledger transactions left unmatched

    Returns:
        Counts, match rate inputs, kind breakdown and amount totals
    """
    kind_counts: dict[str, int] = {}
    for match in matches:
        kind_counts[match.kind.value] = kind_counts.get(match.kind.value, 0) + 1

    return ReconciliationStats(
        total_bank=len(bank_transactions),
        total_ledger=len(ledger_transactions),
        matched_bank_count=sum(len(m.bank) for m in matches),
        matched_ledger_count=sum(len(m.ledger) for m in matches),
        unmatched_bank_count=len(unmatched_bank),
        unmatched_ledger_count=len(unmatched_ledger),
        matches_by_kind=kind_counts,
        bank_total_credits=_total(bank_transactions, TransactionType.CREDIT),
        bank_total_debits=_total(bank_transactions, TransactionType.DEBIT),
        ledger_total_credits=_total(ledger_transactions, TransactionType.CREDIT),
        ledger_total_debits=_total(ledger_transactions, TransactionType.DEBIT),
    )


def reconcile(
    bank_transactions: Sequence[Transaction],
    ledger_transactions: Sequence[Transaction],
    mode: str = "accuracy",
    progress: Optional[ProgressCallback] = None,
) -> ReconciliationResult:
    """Reconcile with the default configuration."""
    return ReconciliationEngine().reconcile(
        bank_transactions, ledger_transactions, mode=mode, progress=progress
    )


def _total(transactions: Sequence[Transaction], txn_type: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type is txn_type), Decimal("0"))


def _notify(progress: Optional[ProgressCallback], percent: int) -> None:
    if progress is not None:
        progress(percent)


def _check_cancelled(should_cancel: Optional[CancelCheck], where: str) -> None:
    if should_cancel is not None and should_cancel():
        logger.warning(f"Reconciliation cancelled {where}")
        raise ReconciliationCancelled(f"Reconciliation cancelled {where}")
