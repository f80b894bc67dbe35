"""Amount bucketing for constant-time candidate lookup."""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable

from ..models.transaction import Transaction, to_cents


class AmountIndex:
    """
    Transactions bucketed by amount in whole cents.

    A lookup returns the exact bucket followed by the buckets one cent either
    side, which absorbs rounding noise between the two systems.
    """

    def __init__(self, transactions: Iterable[Transaction]):
        self._buckets: dict[int, list[Transaction]] = defaultdict(list)
        for txn in transactions:
            self._buckets[txn.amount_cents].append(txn)

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._buckets.values())

    def candidates(self, amount: Decimal) -> list[Transaction]:
        """
        Transactions within one cent of an amount.

        Args:
            amount: Target amount

        Returns:
            Bucket at the amount, then one cent below, then one cent above
        """
        key = to_cents(amount)
        return [
            *self._buckets.get(key, ()),
            *self._buckets.get(key - 1, ()),
            *self._buckets.get(key + 1, ()),
        ]
