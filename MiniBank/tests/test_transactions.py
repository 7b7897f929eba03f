"""
Tests for the transaction log, its filters, statements and receipts.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from core.models.entities import TransactionType
from core.repositories.transaction_repository import (
    AmountFilter, DateRangeFilter, TransactionRepository, TypeFilter
)
from utils.exceptions import (
    AccountNotFoundException, InsufficientFundsException,
    PersistenceException, ValidationException
)


@pytest.fixture
def busy_account(bank, open_account, clock):
    """alice: opened 2025-06-15, deposit on 06-20, withdraw on 07-02, transfer out on 07-03"""
    number = open_account("alice", balance="1000")
    other = open_account("bob", balance="100")
    clock.advance(days=5)
    bank.accounts.deposit(number, Decimal("200"))
    clock.advance(days=12)
    bank.accounts.withdraw(number, Decimal("75.5"))
    clock.advance(days=1)
    bank.accounts.transfer(number, other, Decimal("200"))
    return number


class TestLogFormat:

    def test_line_format(self, bank, open_account):
        number = open_account("alice", balance="1000")

        lines = bank.storage.read_lines(f"transactions/acc_{number}.txt")
        assert lines == ["2025-06-15 10:00:00 | Deposit | Amount: 1000 | Balance: 1000"]

    def test_parse_legacy_timestamp(self):
        txn = TransactionRepository.parse_line(
            1001, "Sun Jun 15 10:00:00 2025 | Withdraw | Amount: 12.5 | Balance: 87.5"
        )

        assert txn.txn_time == datetime(2025, 6, 15, 10, 0, 0)
        assert txn.txn_type == TransactionType.WITHDRAW
        assert txn.balance_after_txn == Decimal("87.5")

    def test_unreadable_lines_are_skipped(self, bank, open_account):
        number = open_account("alice")
        bank.storage.append_lines(f"transactions/acc_{number}.txt", [
            "garbage",
            "not a date | Deposit | Amount: 1 | Balance: 1",
            "2025-06-15 10:00:00 | Bonus | Amount: 1 | Balance: 1",
        ])

        assert len(list(bank.transactions.history(number))) == 1


class TestFilters:

    def test_date_range_is_inclusive_of_whole_days(self, bank, busy_account):
        found = list(bank.transactions.query(
            busy_account, DateRangeFilter.for_days(date(2025, 6, 20), date(2025, 7, 2))
        ))

        assert [t.txn_type for t in found] == [TransactionType.DEPOSIT, TransactionType.WITHDRAW]

    def test_type_filter_is_case_insensitive_substring(self, bank, busy_account):
        found = list(bank.transactions.query(busy_account, TypeFilter("transfer")))

        assert [t.txn_type for t in found] == [TransactionType.TRANSFER_OUT]
        assert len(list(bank.transactions.query(busy_account, TypeFilter("DEPO")))) == 2

    def test_amount_filter_is_exact(self, bank, busy_account):
        found = list(bank.transactions.query(busy_account, AmountFilter(Decimal("200"))))

        assert [t.txn_type for t in found] == [TransactionType.DEPOSIT, TransactionType.TRANSFER_OUT]

    def test_query_is_restartable_and_sees_new_records(self, bank, open_account):
        number = open_account("alice")
        query = bank.transactions.query(number, TypeFilter("deposit"))

        assert len(list(query)) == 1
        bank.accounts.deposit(number, Decimal("5"))
        assert len(list(query)) == 2
        assert len(list(query)) == 2

    def test_unsupported_predicate(self, bank, open_account):
        number = open_account("alice")

        with pytest.raises(ValidationException):
            bank.transactions.query(number, lambda txn: True)

    def test_service_filters(self, bank, busy_account):
        svc = bank.transaction_svc

        assert len(svc.filter_by_date_range(busy_account, date(2025, 7, 1), date(2025, 7, 31))) == 2
        assert len(svc.filter_by_amount(busy_account, "75.50")) == 1
        assert svc.filter_by_type(busy_account, "loan") == []

        with pytest.raises(ValidationException):
            svc.filter_by_date_range(busy_account, date(2025, 8, 1), date(2025, 7, 1))
        with pytest.raises(ValidationException):
            svc.filter_by_type(busy_account, "  ")

    def test_last_transactions(self, bank, busy_account):
        last = bank.transaction_svc.last_transactions(busy_account, 2)

        assert [t.txn_type for t in last] == [TransactionType.WITHDRAW, TransactionType.TRANSFER_OUT]


class TestStatements:

    def test_monthly_statement_is_saved(self, bank, busy_account):
        result = bank.transaction_svc.monthly_statement(busy_account, 2025, 7)

        assert [t.txn_type for t in result['transactions']] == [
            TransactionType.WITHDRAW, TransactionType.TRANSFER_OUT
        ]
        lines = bank.storage.read_lines(result['statement_file'])
        assert lines[0] == "==== MONTHLY STATEMENT ===="
        assert f"Account#: {busy_account}" in lines
        assert "Period: 7/2025" in lines
        assert len(lines) == 7

    def test_empty_month(self, bank, busy_account):
        result = bank.transaction_svc.monthly_statement(busy_account, 2024, 1)

        assert result['transactions'] == []
        assert bank.storage.read_lines(result['statement_file'])[-1] == "No transactions in this period."

    def test_invalid_month(self, bank, busy_account):
        with pytest.raises(ValidationException):
            bank.transaction_svc.monthly_statement(busy_account, 2025, 13)

    def test_statement_without_saving(self, bank, busy_account):
        result = bank.transaction_svc.monthly_statement(busy_account, 2025, 6, save=False)

        assert result['statement_file'] is None
        assert len(result['transactions']) == 2


class TestTransactionService:

    def test_deposit_writes_receipt(self, bank, open_account):
        number = open_account("alice", balance="100")

        result = bank.transaction_svc.deposit(number, "40.25")

        assert result['new_balance'] == Decimal("140.25")
        receipt = bank.storage.read_lines(result['receipt'])
        assert "Operation: Deposit" in receipt
        assert "Amount: 40.25" in receipt
        assert "Balance: 140.25" in receipt

    def test_withdraw_failure_is_reraised(self, bank, open_account):
        number = open_account("alice", balance="100")

        with pytest.raises(InsufficientFundsException):
            bank.transaction_svc.withdraw(number, 60)

    def test_receipt_failure_keeps_committed_deposit(self, bank, open_account, reopen, caplog):
        number = open_account("alice", balance="100")
        caplog.set_level(logging.INFO)

        with patch.object(bank.transactions, "write_receipt",
                          side_effect=PersistenceException("disk full")):
            deposited = bank.transaction_svc.deposit(number, "40")
            withdrawn = bank.transaction_svc.withdraw(number, "15")

        assert deposited["receipt"] is None and withdrawn["receipt"] is None
        assert withdrawn["new_balance"] == Decimal("125")
        assert reopen().accounts.get_account(number).balance == Decimal("125")
        events = [getattr(r, "event_type", None) for r in caplog.records]
        assert events.count("receipt_failed") == 2
        assert "deposit_failed" not in events and "withdraw_failed" not in events

    def test_bad_amount_text(self, bank, open_account):
        number = open_account("alice")

        with pytest.raises(ValidationException) as exc:
            bank.transaction_svc.deposit(number, "ten")
        assert exc.value.error_code == "INVALID_AMOUNT"

    def test_transfer_result(self, bank, open_account):
        a = open_account("alice", balance="200")
        b = open_account("bob", balance="50")

        result = bank.transaction_svc.transfer(a, b, "100")

        assert (result['from_balance'], result['to_balance']) == (Decimal("100"), Decimal("150"))

    def test_history_of_unknown_account(self, bank):
        with pytest.raises(AccountNotFoundException):
            bank.transaction_svc.get_history(1001)

    def test_all_histories(self, bank, open_account):
        a = open_account("alice")
        b = open_account("bob")

        histories = bank.transaction_svc.all_histories()

        assert set(histories) == {a, b}
        assert all(len(rows) == 1 for rows in histories.values())
