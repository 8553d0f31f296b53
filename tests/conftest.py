"""Pytest fixtures: in-memory store, a controllable clock and predictable ids."""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from comanda.catalog import ProductCatalog
from comanda.ledger import OrderLedger
from comanda.persistence import MemoryCollectionStore

BRT = timezone(timedelta(hours=-3))


class FixedClock:
    """Clock that only moves when a test says so."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class SequentialIds:
    def __init__(self, prefix: str = "id") -> None:
        self.prefix = prefix
        self._counter = count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 5, 10, 19, 30, tzinfo=BRT))


@pytest.fixture
def store() -> MemoryCollectionStore:
    return MemoryCollectionStore()


@pytest.fixture
def catalog(store, clock) -> ProductCatalog:
    catalog = ProductCatalog(store, clock=clock, id_factory=SequentialIds("product"))
    catalog.load()
    return catalog


@pytest.fixture
def ledger(store, catalog, clock) -> OrderLedger:
    ledger = OrderLedger(store, catalog, clock=clock, id_factory=SequentialIds())
    ledger.load()
    return ledger
