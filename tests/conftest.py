"""Pytest configuration and fixtures."""

from datetime import date, timedelta
from decimal import Decimal
from itertools import count

import pytest

from ledger_recon.config import ReconConfig
from ledger_recon.models.transaction import (
    Transaction,
    TransactionSource,
    TransactionType,
)

BASE_DATE = date(2024, 3, 4)


@pytest.fixture
def make_txn():
    """Factory for transactions; ids are generated per side when omitted."""
    counters = {TransactionSource.BANK: count(1), TransactionSource.LEDGER: count(1)}

    def _make(
        source,
        amount,
        description="",
        day=0,
        txn_type=TransactionType.DEBIT,
        txn_id=None,
        on=None,
    ):
        source = TransactionSource(source)
        if txn_id is None:
            txn_id = f"{source.value[0].upper()}{next(counters[source])}"
        return Transaction(
            id=txn_id,
            date=on or BASE_DATE + timedelta(days=day),
            description=description,
            amount=Decimal(str(amount)),
            type=txn_type,
            source=source,
        )

    return _make


@pytest.fixture
def bank(make_txn):
    def _bank(amount, description="", day=0, **kwargs):
        return make_txn(TransactionSource.BANK, amount, description, day, **kwargs)

    return _bank


@pytest.fixture
def ledger(make_txn):
    def _ledger(amount, description="", day=0, **kwargs):
        return make_txn(TransactionSource.LEDGER, amount, description, day, **kwargs)

    return _ledger


@pytest.fixture
def config():
    return ReconConfig()


@pytest.fixture
def accuracy_settings(config):
    return config.settings_for("accuracy")


@pytest.fixture
def speed_settings(config):
    return config.settings_for("speed")
