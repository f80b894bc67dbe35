"""Per-run record of which transactions have been claimed by a match."""

from typing import Iterable

from ..models.transaction import Transaction, TransactionSource


class DoubleClaimError(RuntimeError):
    """A transaction was offered to a second match group."""


class ClaimState:
    """
    Claimed/unclaimed status for every transaction on both sides.

    Created at the start of a reconciliation run and discarded with it. Passes
    read it to filter candidates and write to it only through ``claim``, which
    refuses to hand the same transaction to two groups.
    """

    def __init__(self, bank: Iterable[Transaction], ledger: Iterable[Transaction]):
        self._claimed: dict[TransactionSource, dict[str, bool]] = {
            TransactionSource.BANK: {t.id: False for t in bank},
            TransactionSource.LEDGER: {t.id: False for t in ledger},
        }

    def is_claimed(self, txn: Transaction) -> bool:
        return self._claimed[txn.source].get(txn.id, False)

    def is_free(self, txn: Transaction) -> bool:
        return not self.is_claimed(txn)

    def claim(self, bank: Iterable[Transaction], ledger: Iterable[Transaction]) -> None:
        """
        Mark a match group's transactions as claimed.

        All transactions are checked before any is marked, so a rejected claim
        leaves the state untouched.

        Raises:
            DoubleClaimError: If any transaction is already claimed
        """
        items = [*bank, *ledger]
        for txn in items:
            if self.is_claimed(txn):
                raise DoubleClaimError(
                    f"{txn.source.value} transaction {txn.id} is already matched"
                )
        for txn in items:
            self._claimed[txn.source][txn.id] = True

    def claimed_count(self, source: TransactionSource) -> int:
        return sum(self._claimed[source].values())
