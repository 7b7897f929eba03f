"""
Tests for the assembled bank: reviews, feedback, rates, reports and data maintenance.
"""

import os
from datetime import datetime
from decimal import Decimal

import pytest

from core.bank import Bank
from core.models.entities import UserRole
from utils.exceptions import ValidationException


class TestReviews:

    def test_stack_order_in_memory_and_on_disk(self, bank, reopen):
        for text in ("first", "second", "third"):
            bank.review_svc.submit_review("alice", text)

        assert bank.review_svc.reviews() == ["third", "second", "first"]
        assert bank.storage.read_lines("reviews.txt") == ["third", "second", "first"]
        assert reopen().review_svc.undo_last_review() == "third"

    def test_undo_on_empty_stack(self, bank):
        assert bank.review_svc.undo_last_review() is None

    def test_review_must_be_one_line(self, bank):
        with pytest.raises(ValidationException):
            bank.review_svc.submit_review("alice", "two\nlines")
        with pytest.raises(ValidationException):
            bank.review_svc.submit_review("alice", "   ")


class TestFeedback:

    def test_unknown_service_becomes_other(self, bank, reopen):
        bank.review_svc.submit_feedback("alice", "Loans", "quick approval")
        bank.review_svc.submit_feedback("bob", "Parking", "no spaces")

        reloaded = reopen()
        assert [f.service for f in reloaded.review_svc.feedback()] == ["Loans", "Other"]
        assert [f.username for f in reloaded.review_svc.feedback("Other")] == ["bob"]
        assert reloaded.review_svc.feedback("Loans")[0].submitted_at == datetime(2025, 6, 15, 10, 0, 0)

    def test_feedback_text_cannot_hold_delimiter(self, bank):
        with pytest.raises(ValidationException):
            bank.review_svc.submit_feedback("alice", "Loans", "fast|cheap")


class TestExchangeRates:

    def test_defaults(self, bank):
        rates = bank.report_svc.exchange_rates()

        assert (rates.usd, rates.eur, rates.sar) == (Decimal("2.60"), Decimal("2.45"), Decimal("9.75"))

    def test_update_persists(self, bank, reopen):
        bank.report_svc.update_exchange_rates("2.6008", "2.4", 10)

        assert bank.storage.read_lines("exchange_rates.txt") == ["2.6008", "2.4", "10"]
        assert reopen().report_svc.exchange_rates().sar == Decimal("10")

    def test_rates_must_be_positive(self, bank):
        with pytest.raises(ValidationException):
            bank.report_svc.update_exchange_rates("0", "2.4", "10")

    def test_bad_file_keeps_defaults(self, bank, reopen):
        bank.storage.write_lines("exchange_rates.txt", ["abc", "-1", "4"])

        rates = reopen().report_svc.exchange_rates()

        assert (rates.usd, rates.eur, rates.sar) == (Decimal("2.60"), Decimal("2.45"), Decimal("4"))

    def test_currency_report(self, bank, open_account):
        open_account("alice", balance="60")
        open_account("bob", balance="50.5")

        report = bank.report_svc.currency_report()

        assert report[0] == {
            'account_number': 1001, 'username': 'alice', 'OMR': Decimal("60.00"),
            'USD': Decimal("156.00"), 'EUR': Decimal("147.00"), 'SAR': Decimal("585.00")
        }
        assert report[1] == {
            'account_number': 1002, 'username': 'bob', 'OMR': Decimal("50.50"),
            'USD': Decimal("131.30"), 'EUR': Decimal("123.73"), 'SAR': Decimal("492.38")
        }


class TestSystemStats:

    def test_counts(self, bank, open_account):
        open_account("alice", balance="6000")
        open_account("bob", balance="100")
        bank.loan_svc.submit("alice", "1000", "car")
        bank.approval_svc.submit_account_request("carol", "Carol", "909", "100", "9", "Sur")
        bank.approval_svc.book_appointment("bob", "Loan", "2025-07-01", "09:00")
        bank.review_svc.submit_review("bob", "fine")

        stats = bank.report_svc.system_stats()

        assert stats['total_users'] == 3
        assert stats['admins'] == 1
        assert stats['customers'] == 2
        assert stats['accounts'] == 2
        assert stats['total_balance'] == Decimal("6100")
        assert stats['average_balance'] == Decimal("3050.00")
        assert stats['pending_account_requests'] == 1
        assert stats['pending_loans'] == 1
        assert stats['loan_interest'] == Decimal("0.00")
        assert stats['pending_appointments'] == 1
        assert stats['reviews'] == 1


class TestDataMaintenance:

    def test_backup_copies_data_files(self, bank, open_account, data_dir):
        number = open_account("alice")

        path = bank.backup("snapshot")

        assert path == os.path.join(data_dir, "backups", "snapshot")
        assert os.path.exists(os.path.join(path, "accounts.txt"))
        assert os.path.exists(os.path.join(path, "transactions", f"acc_{number}.txt"))

    def test_delete_all_keeps_backups_and_bootstrap_admin(self, bank, open_account, data_dir, reopen):
        open_account("alice")
        bank.backup("before")
        session = bank.auth_svc.login("q", "q", UserRole.ADMIN)

        bank.delete_all_data()

        assert bank.accounts.count() == 0
        assert bank.auth_svc.validate_session(session.token) is None
        assert os.path.isdir(os.path.join(data_dir, "backups", "before"))
        assert not os.path.exists(os.path.join(data_dir, "transactions"))
        reloaded = reopen()
        assert reloaded.users.get_all()[0].username == "q"
        assert reloaded.accounts.last_account_number == 1000

    def test_shutdown_ends_sessions(self, bank):
        session = bank.auth_svc.login("q", "q", UserRole.ADMIN)

        bank.shutdown()

        assert session.cancelled
        assert bank.auth_svc.active_sessions == {}

    def test_open_uses_environment_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MINIBANK_DATA_DIR", str(tmp_path / "envdata"))

        bank = Bank.open()

        assert bank.config.data_dir == str(tmp_path / "envdata")
        assert os.path.exists(os.path.join(str(tmp_path / "envdata"), "users.txt"))
