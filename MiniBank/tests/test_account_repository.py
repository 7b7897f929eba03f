"""
Tests for the ledger store: numbering, minimum balance, transfers, persistence.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest

from core.models.entities import TransactionType, UserRole
from core.repositories.account_repository import INITIAL_ACCOUNT_NUMBER, MINIMUM_BALANCE
from utils.exceptions import (
    AccountNotFoundException, InsufficientFundsException,
    PersistenceException, ValidationException
)


class TestAccountNumbering:

    def test_numbers_start_after_initial_and_increase(self, open_account):
        first = open_account("alice")
        second = open_account("bob")

        assert first == INITIAL_ACCOUNT_NUMBER + 1 == 1001
        assert second == 1002

    def test_deleted_number_is_not_reused(self, bank, open_account):
        open_account("alice")
        second = open_account("bob")
        bank.accounts.delete_account(second)

        assert open_account("carol") == 1003

    def test_deleted_number_is_not_reused_after_restart(self, bank, open_account, reopen):
        open_account("alice")
        second = open_account("bob")
        bank.accounts.delete_account(second)

        reloaded = reopen()

        assert reloaded.accounts.last_account_number == 1002
        reloaded.users.register("carol", "secret", UserRole.CUSTOMER)
        number = reloaded.accounts.open_account("carol", "900", Decimal("100"), "1", "Sur")
        assert number == 1003


class TestOpening:

    def test_initial_deposit_is_first_record(self, bank, open_account):
        number = open_account("alice", balance="250.5")

        history = list(bank.transactions.history(number))
        assert len(history) == 1
        assert history[0].txn_type == TransactionType.DEPOSIT
        assert history[0].amount == Decimal("250.5")
        assert history[0].balance_after_txn == Decimal("250.5")

    def test_initial_deposit_below_minimum(self, open_account):
        with pytest.raises(InsufficientFundsException) as exc:
            open_account("alice", balance="49.99")
        assert exc.value.error_code == "BELOW_MINIMUM_BALANCE"

    def test_duplicate_national_id(self, open_account):
        open_account("alice", national_id="555")

        with pytest.raises(ValidationException) as exc:
            open_account("bob", national_id="555")
        assert exc.value.error_code == "DUPLICATE_NATIONAL_ID"

    def test_one_account_per_owner_case_insensitive(self, bank, open_account):
        open_account("alice")

        with pytest.raises(ValidationException) as exc:
            bank.accounts.open_account("ALICE", "777", Decimal("100"), "1", "Sur")
        assert exc.value.error_code == "DUPLICATE_USERNAME"


class TestMinimumBalance:

    def test_withdraw_that_breaks_minimum_is_refused(self, bank, open_account):
        number = open_account("alice", balance="1000")

        with pytest.raises(InsufficientFundsException):
            bank.accounts.withdraw(number, Decimal("960"))

        assert bank.accounts.get_account(number).balance == Decimal("1000")
        assert len(list(bank.transactions.history(number))) == 1

    def test_withdraw_down_to_minimum(self, bank, open_account):
        number = open_account("alice", balance="1000")

        assert bank.accounts.withdraw(number, Decimal("950")) == MINIMUM_BALANCE

    def test_deposit_rejects_non_positive_amounts(self, bank, open_account):
        number = open_account("alice")

        for amount in (Decimal("0"), Decimal("-5"), Decimal("1.005")):
            with pytest.raises(ValidationException):
                bank.accounts.deposit(number, amount)

    def test_unknown_account(self, bank):
        with pytest.raises(AccountNotFoundException):
            bank.accounts.deposit(4242, Decimal("10"))


class TestTransfer:

    def test_transfer_moves_funds_and_logs_both_legs(self, bank, open_account, clock):
        a = open_account("alice", balance="200")
        b = open_account("bob", balance="50")
        clock.advance(minutes=1)

        balances = bank.accounts.transfer(a, b, Decimal("100"))

        assert balances == (Decimal("100"), Decimal("150"))
        out_leg = list(bank.transactions.history(a))[-1]
        in_leg = list(bank.transactions.history(b))[-1]
        assert out_leg.txn_type == TransactionType.TRANSFER_OUT
        assert in_leg.txn_type == TransactionType.TRANSFER_IN
        assert out_leg.balance_after_txn == Decimal("100")
        assert in_leg.balance_after_txn == Decimal("150")
        assert out_leg.txn_time <= in_leg.txn_time

    def test_transfer_that_breaks_minimum_changes_nothing(self, bank, open_account):
        a = open_account("alice", balance="200")
        b = open_account("bob", balance="50")

        with pytest.raises(InsufficientFundsException):
            bank.accounts.transfer(a, b, Decimal("151"))

        assert bank.accounts.get_account(a).balance == Decimal("200")
        assert bank.accounts.get_account(b).balance == Decimal("50")

    def test_transfer_to_self(self, bank, open_account):
        a = open_account("alice")

        with pytest.raises(ValidationException):
            bank.accounts.transfer(a, a, Decimal("10"))

    def test_transfer_to_unknown_account(self, bank, open_account):
        a = open_account("alice")

        with pytest.raises(AccountNotFoundException):
            bank.accounts.transfer(a, 9999, Decimal("10"))
        assert bank.accounts.get_account(a).balance == Decimal("1000")


class TestPersistence:

    def test_accounts_file_format(self, bank, open_account):
        open_account("alice", balance="1000.50", national_id="123")

        lines = bank.storage.read_lines("accounts.txt")
        assert lines == ["1001,alice,1000.5,123,99887766,Muscat"]

    def test_reload_round_trip(self, bank, open_account, reopen):
        a = open_account("alice", balance="300")
        b = open_account("bob", balance="80")
        bank.accounts.transfer(a, b, Decimal("30.25"))

        reloaded = reopen()

        assert reloaded.accounts.get_account(a).balance == Decimal("269.75")
        assert reloaded.accounts.get_account(b).balance == Decimal("110.25")
        assert reloaded.accounts.last_account_number == b

    def test_failed_save_keeps_memory_and_flush_catches_up(self, bank, open_account, reopen):
        number = open_account("alice", balance="500")

        with patch.object(bank.storage, "write_lines",
                          side_effect=PersistenceException("disk full")):
            with pytest.raises(PersistenceException):
                bank.accounts.deposit(number, Decimal("25"))

        assert bank.accounts.get_account(number).balance == Decimal("525")
        assert bank.accounts.is_dirty
        assert bank.is_dirty

        assert bank.flush() is True
        assert not bank.is_dirty
        assert reopen().accounts.get_account(number).balance == Decimal("525")

    def test_failed_log_append_is_held_until_flush(self, bank, open_account, reopen):
        number = open_account("alice", balance="500")

        with patch.object(bank.storage, "append_lines",
                          side_effect=PersistenceException("disk full")):
            with pytest.raises(PersistenceException):
                bank.accounts.withdraw(number, Decimal("100"))

        # The held-back line is still visible to queries
        assert len(list(bank.transactions.history(number))) == 2
        assert bank.transactions.is_dirty

        bank.flush()
        history = list(reopen().transactions.history(number))
        assert [t.txn_type for t in history] == [TransactionType.DEPOSIT, TransactionType.WITHDRAW]


class TestQueries:

    def test_search_and_lookups(self, bank, open_account):
        open_account("alice", national_id="111")
        open_account("malik", national_id="222")

        assert [a.owner_username for a in bank.accounts.search("ali")] == ["alice", "malik"]
        assert [a.owner_username for a in bank.accounts.search("222")] == ["malik"]
        assert bank.accounts.search("  ") == []
        assert bank.accounts.find_by_owner("Alice").national_id == "111"

    def test_balance_statistics(self, bank, open_account):
        assert bank.accounts.average_balance() is None
        assert bank.accounts.richest() == []

        open_account("alice", balance="100")
        open_account("bob", balance="300")
        open_account("carol", balance="300")
        open_account("dave", balance="55")

        assert bank.accounts.total_balance() == Decimal("755")
        assert bank.accounts.average_balance() == Decimal("188.75")
        assert [a.owner_username for a in bank.accounts.top_balances(3)] == ["bob", "carol", "alice"]
        assert {a.owner_username for a in bank.accounts.richest()} == {"bob", "carol"}
        assert [a.owner_username for a in bank.accounts.accounts_above(Decimal("100"))] == ["bob", "carol"]

    def test_export_csv(self, bank, open_account):
        open_account("alice", balance="120", national_id="111")

        path = bank.accounts.export_csv()

        assert path.endswith("accounts_export.txt")
        assert bank.storage.read_lines("accounts_export.txt") == [
            "AccountNumber,Username,NationalID,Balance",
            "1001,alice,111,120",
        ]

    def test_delete_unknown_account(self, bank):
        with pytest.raises(AccountNotFoundException) as exc:
            bank.accounts.delete_account(1001)
        assert exc.value.error_code == "NOT_FOUND"
