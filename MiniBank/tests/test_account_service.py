"""
Tests for customer profile updates and the admin account views.
"""

from decimal import Decimal

import pytest

from core.models.entities import LoanStatus, UserRole
from utils.exceptions import (
    AccountNotFoundException, AuthenticationException, ValidationException
)


class TestProfile:

    def test_details_are_masked(self, bank, open_account):
        open_account("alice", national_id="123456789")

        details = bank.account_svc.get_account_details("alice")

        assert details['national_id'] == "******789"
        assert details['phone'] == "99****66"
        assert details['balance'] == Decimal("1000")

    def test_no_account(self, bank):
        with pytest.raises(AccountNotFoundException):
            bank.account_svc.get_account_details("ghost")

    def test_wrong_current_password_changes_nothing(self, bank, open_account):
        open_account("alice")

        with pytest.raises(AuthenticationException) as exc:
            bank.account_svc.update_info("alice", "nope", phone="11112222")
        assert exc.value.error_code == "WRONG_OLD_PASSWORD"
        assert bank.accounts.find_by_owner("alice").phone == "99887766"

    def test_update_contact_details(self, bank, open_account):
        number = open_account("alice")

        result = bank.account_svc.update_info("alice", "secret", phone="11112222",
                                              address="  Nizwa   Road ", national_id="777")

        account = bank.accounts.get_account(number)
        assert (account.phone, account.address, account.national_id) == ("11112222", "Nizwa Road", "777")
        assert result['changed'] == ['phone', 'address', 'national_id']

    def test_invalid_value_blocks_every_change(self, bank, open_account):
        open_account("alice")

        with pytest.raises(ValidationException):
            bank.account_svc.update_info("alice", "secret", new_password="better", phone="12ab")

        assert bank.users.authenticate("alice", "secret", UserRole.CUSTOMER)

    def test_national_id_must_stay_unique(self, bank, open_account):
        open_account("alice", national_id="111")
        open_account("bob", national_id="222")
        bank.approval_svc.submit_account_request("carol", "Carol", "333", "100", "9", "Sur")

        for taken in ("222", "333"):
            with pytest.raises(ValidationException) as exc:
                bank.account_svc.update_info("alice", "secret", national_id=taken)
            assert exc.value.error_code == "DUPLICATE_NATIONAL_ID"

        bank.account_svc.update_info("alice", "secret", national_id="111")

    def test_rename_carries_account_and_loans(self, bank, open_account, reopen):
        number = open_account("alice", balance="6000")
        bank.loan_svc.submit("alice", "100", "bike")

        result = bank.account_svc.update_info("alice", "secret", new_username="alicia",
                                              new_password="better")

        assert result['username'] == "alicia"
        reloaded = reopen()
        assert reloaded.accounts.get_account(number).owner_username == "alicia"
        assert [l.status for l in reloaded.loan_svc.for_user("alicia")] == [LoanStatus.PENDING]
        assert reloaded.users.authenticate("alicia", "better", UserRole.CUSTOMER)
        assert not reloaded.users.username_exists("alice")

    def test_rename_to_taken_username(self, bank, open_account):
        open_account("alice")
        open_account("bob")

        with pytest.raises(ValidationException) as exc:
            bank.account_svc.update_info("alice", "secret", new_username="bob")
        assert exc.value.error_code == "DUPLICATE_USERNAME"

    def test_rename_cannot_take_account_by_case(self, bank, open_account):
        open_account("alice")
        bob = open_account("bob", balance="700")

        with pytest.raises(ValidationException) as exc:
            bank.account_svc.update_info("alice", "secret", new_username="BOB")
        assert exc.value.error_code == "DUPLICATE_USERNAME"

        assert bank.users.find_by_username("alice") is not None
        assert bank.users.find_by_username("BOB") is None
        assert bank.accounts.find_by_owner("bob").account_number == bob
        assert bank.account_svc.get_account_details("alice")["account_number"] != bob

    def test_rename_carries_pending_account_request(self, bank, reopen):
        bank.auth_svc.signup_customer("erin", "secret", "Erin Test", "808", "200", "99001122", "Muscat")

        bank.account_svc.update_info("erin", "secret", new_username="erin2")

        assert bank.approval_svc.peek_account_request().owner_username == "erin2"
        assert not bank.account_svc.has_pending_request("erin")
        reloaded = reopen()
        result = reloaded.approval_svc.process_next_account_request("A")
        assert reloaded.accounts.get_account(result.account_number).owner_username == "erin2"
        assert reloaded.accounts.find_by_owner("erin") is None

    def test_contact_change_without_account(self, bank):
        bank.users.register("alice", "secret", UserRole.CUSTOMER)

        with pytest.raises(AccountNotFoundException):
            bank.account_svc.update_info("alice", "secret", phone="11112222")

    def test_balance_in_currencies(self, bank, open_account):
        open_account("alice", balance="100")

        converted = bank.account_svc.balance_in_currencies("alice")

        assert converted == {
            'OMR': Decimal("100.00"), 'USD': Decimal("260.00"),
            'EUR': Decimal("245.00"), 'SAR': Decimal("975.00")
        }


class TestAdminViews:

    def test_delete_and_list(self, bank, open_account):
        a = open_account("alice")
        open_account("bob")

        deleted = bank.account_svc.delete_account(a)

        assert deleted.owner_username == "alice"
        assert [x.owner_username for x in bank.account_svc.list_accounts()] == ["bob"]
        # The log of a deleted account is kept
        assert bank.transactions.has_history(a)

    def test_accounts_above_accepts_text(self, bank, open_account):
        open_account("alice", balance="100")
        open_account("bob", balance="900")

        assert [a.owner_username for a in bank.account_svc.accounts_above("500")] == ["bob"]

    def test_export(self, bank, open_account):
        open_account("alice")

        path = bank.account_svc.export_accounts()

        assert path.endswith("accounts_export.txt")

    def test_locked_users_and_unlock(self, bank, open_account):
        open_account("alice")
        for _ in range(3):
            with pytest.raises(AuthenticationException):
                bank.users.authenticate("alice", "bad", UserRole.CUSTOMER)

        assert [u.username for u in bank.account_svc.locked_users()] == ["alice"]
        bank.account_svc.unlock_user("alice")
        assert bank.account_svc.locked_users() == []
