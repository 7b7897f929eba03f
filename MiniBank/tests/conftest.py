"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from core.bank import Bank
from core.models.entities import UserRole


class FakeClock:
    """Manually advanced clock handed to the engine instead of datetime.now"""

    def __init__(self, start: datetime = datetime(2025, 6, 15, 10, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path) -> str:
    return str(tmp_path / "data")


@pytest.fixture
def bank(data_dir, clock) -> Bank:
    """A freshly loaded bank over an empty data directory."""
    return Bank.open(data_dir, clock=clock)


@pytest.fixture
def reopen(data_dir, clock):
    """Build a second bank over the same files, as after a restart."""
    def _reopen() -> Bank:
        return Bank.open(data_dir, clock=clock)
    return _reopen


@pytest.fixture
def open_account(bank):
    """Open an approved account directly in the ledger."""
    counter = {"nid": 100}

    def _open(username: str, balance: str = "1000", national_id: str = None,
              with_login: bool = True) -> int:
        counter["nid"] += 1
        if with_login and not bank.users.username_exists(username):
            bank.users.register(username, "secret", UserRole.CUSTOMER)
        return bank.accounts.open_account(
            username, national_id or str(counter["nid"]), Decimal(balance), "99887766", "Muscat"
        )
    return _open
