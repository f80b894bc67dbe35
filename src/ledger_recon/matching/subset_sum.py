"""
Bounded subset-sum search for split and merge matches.

Finds a handful of items on one side whose amounts add up to a single item on
the other side: one bank deposit covering three invoices, or three card
settlements posted as one ledger entry.
"""

from typing import Callable, Optional, Sequence

from ..models.transaction import Transaction
from ..utils.exceptions import ReconciliationCancelled


def find_subset_sum(
    pool: Sequence[Transaction],
    target_cents: int,
    max_depth: int,
    tolerance_cents: int = 1,
    min_items: int = 2,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Optional[list[Transaction]]:
    """
    Find a combination of pool items summing to the target.

    The pool is tried largest amount first, so big items settle the sum early
    and overshooting branches are cut quickly. The first combination found is
    returned, not the best one.

    Args:
        pool: Candidate transactions (same polarity as the anchor)
        target_cents: Amount to reach, in cents
        max_depth: Maximum number of items in a combination
        tolerance_cents: A sum is accepted when it differs from the target by
            strictly less than this
        min_items: Smallest combination worth reporting
        should_cancel: Optional check polled at every search node

    Returns:
        The matching items, or None if no combination within depth fits

    Raises:
        ReconciliationCancelled: If ``should_cancel`` returns True
    """
    if max_depth <= 0 or max_depth < min_items or len(pool) < min_items:
        return None

    # Stable sort: equal amounts keep the caller's (date proximity) order
    items = sorted(pool, key=lambda t: t.amount_cents, reverse=True)
    amounts = [t.amount_cents for t in items]

    found = _search(
        amounts,
        target_cents,
        tolerance_cents,
        min_items,
        start=0,
        depth_remaining=max_depth,
        running_sum=0,
        chosen=(),
        should_cancel=should_cancel,
    )
    if found is None:
        return None
    return [items[i] for i in found]


def _search(
    amounts: list[int],
    target: int,
    tolerance: int,
    min_items: int,
    start: int,
    depth_remaining: int,
    running_sum: int,
    chosen: tuple[int, ...],
    should_cancel: Optional[Callable[[], bool]],
) -> Optional[tuple[int, ...]]:
    """Depth-first search over pool positions; returns chosen indices."""
    if should_cancel is not None and should_cancel():
        raise ReconciliationCancelled("Subset-sum search cancelled")

    if len(chosen) >= min_items and abs(running_sum - target) < tolerance:
        return chosen

    if depth_remaining == 0 or start >= len(amounts):
        return None
    if running_sum > target + tolerance:
        return None

    limit = target + tolerance
    for i in range(start, len(amounts)):
        next_sum = running_sum + amounts[i]
        # Amounts are non-negative, so this item alone overshoots
        if next_sum > limit:
            continue

        found = _search(
            amounts,
            target,
            tolerance,
            min_items,
            start=i + 1,
            depth_remaining=depth_remaining - 1,
            running_sum=next_sum,
            chosen=chosen + (i,),
            should_cancel=should_cancel,
        )
        if found is not None:
            return found

    return None
