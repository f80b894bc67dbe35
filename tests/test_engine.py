"""Tests for the multi-pass reconciliation engine."""

from datetime import date
from decimal import Decimal

import pytest

from ledger_recon.config import MatchingConfig, ModeProfile, ReconConfig
from ledger_recon.matching.engine import ReconciliationEngine, reconcile
from ledger_recon.models.transaction import MatchKind, TransactionType
from ledger_recon.utils.exceptions import ConfigurationError, ReconciliationCancelled


@pytest.fixture
def engine():
    return ReconciliationEngine()


@pytest.fixture
def mixed(bank, ledger):
    """A small book covering every pass, plus leftovers on both sides."""
    bank_txns = [
        bank("100.00", "Invoice REF1024 Payment", day=0),
        bank("42.00", "ATM", day=1),
        bank("850.50", "Office Supply Co", day=2),
        bank("100.00", "Deposit batch", day=3),
        bank("75.00", "Unknown", day=4),
        bank("12.34", "Interest", day=5, txn_type=TransactionType.CREDIT),
    ]
    ledger_txns = [
        ledger("100.00", "Settlement for INV1024", day=20),
        ledger("42.00", "Grocery", day=1),
        ledger("850.50", "Office Supplies Ltd", day=8),
        ledger("30.00", "Inv A", day=3),
        ledger("40.00", "Inv B", day=4),
        ledger("30.00", "Inv C", day=3),
        ledger("500.00", "Orphan", day=9),
    ]
    return bank_txns, ledger_txns


def ids(transactions):
    return [t.id for t in transactions]


class TestReferencePass:
    """Tests for matching on a shared reference identifier."""

    def test_prefix_insensitive_reference(self, engine, bank, ledger):
        b = bank("100.00", "Invoice REF1024 Payment", day=0)
        lg = ledger("100.00", "Settlement for INV1024", day=30)

        result = engine.reconcile([b], [lg])

        assert len(result.matches) == 1
        match = result.matches[0]
        assert match.confidence == 0.99
        assert match.kind is MatchKind.EXACT
        assert match.reason == "Matched by Amount & Reference ID"

    def test_gap_beyond_reference_window(self, engine, bank, ledger):
        b = bank("100.00", "Invoice REF1024 Payment", on=date(2024, 1, 5))
        lg = ledger("100.00", "Settlement for INV1024", on=date(2024, 3, 1))

        result = engine.reconcile([b], [lg], mode="accuracy")

        assert result.matches == []
        assert ids(result.unmatched_bank) == ["B1"]
        assert ids(result.unmatched_ledger) == ["L1"]

    def test_wider_reference_window(self, bank, ledger):
        config = ReconConfig(
            matching=MatchingConfig(
                modes={
                    "accuracy": ModeProfile(
                        strict_window_days=3,
                        loose_window_days=10,
                        reference_window_days=60,
                        fuzzy_threshold=0.6,
                        max_combination_depth=4,
                    )
                }
            )
        )
        b = bank("100.00", "Invoice REF1024 Payment", on=date(2024, 1, 5))
        lg = ledger("100.00", "Settlement for INV1024", on=date(2024, 3, 1))

        result = ReconciliationEngine(config).reconcile([b], [lg])

        assert len(result.matches) == 1
        assert result.matches[0].confidence == 0.99

    def test_reference_beats_closer_candidate(self, engine, bank, ledger):
        b = bank("100.00", "Payment REF5555", day=0)
        near = ledger("100.00", "Misc", day=0)
        far = ledger("100.00", "Receipt 5555", day=20)

        result = engine.reconcile([b], [near, far])

        assert len(result.matches) == 1
        assert ids(result.matches[0].ledger) == [far.id]
        assert ids(result.unmatched_ledger) == [near.id]


class TestExactDatePass:
    """Tests for same-day matching."""

    def test_perfect_match_prefers_similar_text(self, engine, bank, ledger):
        b = bank("80.00", "Starbucks Coffee", day=0)
        other = ledger("80.00", "Rent", day=0)
        similar = ledger("80.00", "Starbucks Coffee Shop", day=0)

        result = engine.reconcile([b], [other, similar])

        match = result.matches[0]
        assert ids(match.ledger) == [similar.id]
        assert match.reason == "Perfect Match"
        assert match.confidence == 0.95

    def test_amount_and_date_only(self, engine, bank, ledger):
        result = engine.reconcile([bank("42.00", "ATM")], [ledger("42.00", "Grocery")])

        match = result.matches[0]
        assert match.reason == "Matched by Amount & Exact Date"
        assert match.confidence == 0.95
        assert match.kind is MatchKind.EXACT

    def test_one_cent_rounding_noise(self, engine, bank, ledger):
        result = engine.reconcile([bank("100.00", "Rent")], [ledger("100.01", "Rent")])
        assert len(result.matches) == 1

    def test_first_bank_item_wins_shared_candidate(self, engine, bank, ledger):
        b1 = bank("100.00", "Rent", day=0)
        b2 = bank("100.00", "Rent", day=0)
        lg = ledger("100.00", "Rent", day=0)

        result = engine.reconcile([b1, b2], [lg])

        assert len(result.matches) == 1
        assert ids(result.matches[0].bank) == [b1.id]
        assert ids(result.unmatched_bank) == [b2.id]


class TestStrictWindowPass:
    """Tests for the nearby-date pass."""

    def test_strong_text(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("60.00", "Acme Widgets", day=0)],
            [ledger("60.00", "acme widgets", day=2)],
        )

        match = result.matches[0]
        assert match.reason == "Strong Text & Nearby Date"
        assert match.confidence == 0.9

    def test_weak_text_next_day_accepted(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("60.00", "Alpha", day=0)],
            [ledger("60.00", "Zeta Holdings Group", day=1)],
        )

        match = result.matches[0]
        assert match.reason == "Amount & Nearby Date"
        assert match.confidence == 0.9

    def test_weak_text_further_away_rejected(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("60.00", "Alpha", day=0)],
            [ledger("60.00", "Zeta Holdings Group", day=3)],
        )

        assert result.matches == []
        assert len(result.unmatched_bank) == 1
        assert len(result.unmatched_ledger) == 1

    def test_clearly_better_text_beats_closer_date(self, engine, bank, ledger):
        b = bank("70.00", "Acme Widgets", day=0)
        close = ledger("70.00", "Rent", day=1)
        similar = ledger("70.00", "Acme Widgets", day=3)

        result = engine.reconcile([b], [close, similar])

        assert ids(result.matches[0].ledger) == [similar.id]

    def test_closer_date_breaks_text_tie(self, engine, bank, ledger):
        b = bank("70.00", "Acme Widgets", day=0)
        far = ledger("70.00", "Acme Widgets", day=3)
        near = ledger("70.00", "ACME widgets", day=1)

        result = engine.reconcile([b], [far, near])

        assert ids(result.matches[0].ledger) == [near.id]


class TestFuzzyPass:
    """Tests for the loose-window text match."""

    def test_accepted_in_accuracy_mode(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("850.50", "Office Supply Co", day=0)],
            [ledger("850.50", "Office Supplies Ltd", day=6)],
            mode="accuracy",
        )

        match = result.matches[0]
        assert match.kind is MatchKind.FUZZY
        # 0.75 similarity less a 6/10 * 0.2 date penalty
        assert match.confidence == pytest.approx(0.63)
        assert match.reason == "Fuzzy Match (75% text sim, 6d offset)"

    def test_out_of_window_in_speed_mode(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("850.50", "Office Supply Co", day=0)],
            [ledger("850.50", "Office Supplies Ltd", day=6)],
            mode="speed",
        )

        assert result.matches == []
        assert len(result.unmatched_bank) == 1
        assert len(result.unmatched_ledger) == 1

    def test_below_threshold(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("20.00", "Alpha", day=0)],
            [ledger("20.00", "Zeta Holdings Group", day=5)],
        )
        assert result.matches == []


class TestCombinationPasses:
    """Tests for split and merge matching."""

    def test_split(self, engine, bank, ledger):
        b = bank("100.00", "Deposit", day=0)
        pool = [
            ledger("30.00", "Inv A", day=0),
            ledger("40.00", "Inv B", day=1),
            ledger("30.00", "Inv C", day=2),
        ]

        result = engine.reconcile([b], pool)

        assert len(result.matches) == 1
        match = result.matches[0]
        assert match.kind is MatchKind.SPLIT
        assert match.confidence == 0.85
        assert ids(match.bank) == [b.id]
        assert sorted(ids(match.ledger)) == ["L1", "L2", "L3"]
        assert match.reason == "Split: 1 Bank Item matches 3 Ledger Items"
        assert match.amount_variance == Decimal("0")
        assert result.unmatched_ledger == []

    def test_merge(self, engine, bank, ledger):
        b1 = bank("100.00", "Card settlement", day=0)
        b2 = bank("150.00", "Card settlement", day=1)
        lg = ledger("250.00", "Card sales", day=1)

        result = engine.reconcile([b1, b2], [lg])

        match = result.matches[0]
        assert match.kind is MatchKind.MERGE
        assert match.confidence == 0.85
        assert sorted(ids(match.bank)) == ["B1", "B2"]
        assert ids(match.ledger) == [lg.id]
        assert match.reason == "Merge: 2 Bank Items match 1 Ledger Item"

    def test_speed_mode_depth_cap(self, engine, bank, ledger):
        b = bank("100.00", "Deposit", day=0)
        pool = [ledger(a, "Inv", day=0) for a in ("30.00", "40.00", "30.00")]

        result = engine.reconcile([b], pool, mode="speed")

        assert result.matches == []
        assert len(result.unmatched_ledger) == 3

    def test_outside_strict_window_ignored(self, engine, bank, ledger):
        b = bank("100.00", "Deposit", day=0)
        pool = [ledger("50.00", "Inv", day=0), ledger("50.00", "Inv", day=5)]

        assert engine.reconcile([b], pool).matches == []

    def test_amount_tolerance_from_config(self, bank, ledger):
        b = bank("100.00", "Deposit", day=0)
        pool = [ledger(a, "Inv", day=0) for a in ("33.33", "33.33", "33.32")]

        assert ReconciliationEngine().reconcile([b], pool).matches == []

        loose = ReconConfig(matching=MatchingConfig(amount_tolerance=Decimal("0.05")))
        result = ReconciliationEngine(loose).reconcile([b], pool)
        assert result.matches[0].kind is MatchKind.SPLIT


class TestPartition:
    """Tests for claim exclusivity and statistics."""

    def test_polarity_mismatch_never_matches(self, engine, bank, ledger):
        result = engine.reconcile(
            [bank("100.00", "Rent", txn_type=TransactionType.CREDIT)],
            [ledger("100.00", "Rent", txn_type=TransactionType.DEBIT)],
        )
        assert result.matches == []

    def test_every_item_exactly_once(self, engine, mixed):
        bank_txns, ledger_txns = mixed
        result = engine.reconcile(bank_txns, ledger_txns)

        seen_bank = [t.id for m in result.matches for t in m.bank]
        seen_bank += ids(result.unmatched_bank)
        seen_ledger = [t.id for m in result.matches for t in m.ledger]
        seen_ledger += ids(result.unmatched_ledger)

        assert sorted(seen_bank) == sorted(ids(bank_txns))
        assert sorted(seen_ledger) == sorted(ids(ledger_txns))

    def test_each_pass_contributes(self, engine, mixed):
        result = engine.reconcile(*mixed)

        reasons = [m.reason for m in result.matches]
        assert reasons[0] == "Matched by Amount & Reference ID"
        assert reasons[1] == "Matched by Amount & Exact Date"
        assert reasons[2].startswith("Fuzzy Match")
        assert reasons[3] == "Split: 1 Bank Item matches 3 Ledger Items"
        assert ids(result.unmatched_bank) == ["B5", "B6"]
        assert ids(result.unmatched_ledger) == ["L7"]

    def test_statistics(self, engine, mixed):
        stats = engine.reconcile(*mixed).stats

        assert stats.total_bank == 6
        assert stats.total_ledger == 7
        assert stats.matched_bank_count == 4
        assert stats.matched_ledger_count == 6
        assert stats.unmatched_bank_count == 2
        assert stats.unmatched_ledger_count == 1
        assert stats.match_rate == pytest.approx(10 / 13 * 100)
        assert stats.matches_by_kind == {
            "exact": 2,
            "fuzzy": 1,
            "split-one-to-many": 1,
        }
        assert stats.bank_total_debits == Decimal("1167.50")
        assert stats.bank_total_credits == Decimal("12.34")

    def test_empty_inputs(self, engine):
        result = engine.reconcile([], [])

        assert result.matches == []
        assert result.stats.match_rate == 0.0

    def test_everything_matched(self, engine, bank, ledger):
        result = engine.reconcile([bank("10.00", "Rent")], [ledger("10.00", "Rent")])
        assert result.stats.match_rate == 100.0

    def test_unmatched_keep_input_order(self, engine, bank, ledger):
        late = bank("1.00", "Late", day=9)
        early = bank("2.00", "Early", day=0)

        result = engine.reconcile([late, early], [ledger("999.00", "Other")])

        assert ids(result.unmatched_bank) == [late.id, early.id]


class TestRunControl:
    """Tests for ids, determinism, progress and cancellation."""

    def test_group_ids(self, engine, mixed):
        result = engine.reconcile(*mixed, run_id="run42")

        assert result.run_id == "run42"
        assert ids(result.matches) == ["run42-0001", "run42-0002", "run42-0003", "run42-0004"]

    def test_random_run_ids_differ(self, engine, mixed):
        first = engine.reconcile(*mixed)
        second = engine.reconcile(*mixed)

        assert first.run_id != second.run_id
        assert len(set(ids(first.matches))) == len(first.matches)

    def test_deterministic(self, engine, mixed):
        def outcome(result):
            return [
                (m.id, ids(m.bank), ids(m.ledger), m.confidence, m.kind)
                for m in result.matches
            ]

        first = engine.reconcile(*mixed, run_id="same")
        second = engine.reconcile(*mixed, run_id="same")

        assert outcome(first) == outcome(second)
        assert ids(first.unmatched_bank) == ids(second.unmatched_bank)

    def test_progress_milestones(self, engine, mixed):
        seen = []
        engine.reconcile(*mixed, progress=seen.append)

        assert seen == [5, 15, 30, 50, 70, 85, 92, 100]

    def test_cancel_before_first_pass(self, engine, mixed):
        seen = []

        with pytest.raises(ReconciliationCancelled):
            engine.reconcile(*mixed, progress=seen.append, should_cancel=lambda: True)

        assert seen == [5, 15]

    def test_cancel_mid_run(self, engine, mixed):
        calls = []

        def cancel_later():
            calls.append(1)
            return len(calls) > 5

        with pytest.raises(ReconciliationCancelled):
            engine.reconcile(*mixed, should_cancel=cancel_later)

    def test_unknown_mode(self, engine, mixed):
        with pytest.raises(ConfigurationError):
            engine.reconcile(*mixed, mode="thorough")

    def test_mode_recorded(self, engine, mixed):
        assert engine.reconcile(*mixed, mode="speed").mode == "speed"
        assert engine.reconcile(*mixed).mode == "accuracy"

    def test_module_level_reconcile(self, mixed):
        result = reconcile(*mixed)
        assert len(result.matches) == 4
