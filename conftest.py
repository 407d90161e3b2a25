from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from config import Settings
from main import LibraryManager
from utils.ui_helpers import OUTPUT_MODE_ENV


class FakeClock:
    """Clock the tests move by hand instead of sleeping."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def policy():
    return Settings(loan_period=5, loan_time_unit="seconds", fine_rate=Decimal("2.00"))

@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")

@pytest.fixture
def lib(policy, clock):
    # Fresh in-memory library per test, also used as the CLI session instance
    lib = LibraryManager.configure(policy, clock=clock)
    yield lib
    LibraryManager.reset()
