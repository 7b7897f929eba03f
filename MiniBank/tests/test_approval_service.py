"""
Tests for the request queues and the decision table behind them.
"""

from decimal import Decimal

import pytest

from core.models.entities import LoanStatus, RequestKind, RequestStatus, UserRole, Verdict
from core.services.approval_service import QueuePolicy, SideEffect, decide
from utils.exceptions import (
    InsufficientFundsException, RequestNotFoundException, ValidationException
)


def submit(bank, username, national_id, deposit="500"):
    return bank.approval_svc.submit_account_request(
        username, f"{username.title()} Test", national_id, deposit, "99001122", "Muscat"
    )


def book(bank, username, service="Consultation", day="2025-07-01", at="10:30"):
    return bank.approval_svc.book_appointment(username, service, day, at, "")


class TestDecisionTable:

    @pytest.mark.parametrize("kind,effect", [
        (RequestKind.ACCOUNT_OPENING, SideEffect.OPEN_ACCOUNT),
        (RequestKind.ADMIN_ACCOUNT, SideEffect.CREATE_ADMIN),
        (RequestKind.APPOINTMENT, SideEffect.BOOK_APPOINTMENT),
    ])
    def test_approve_and_reject(self, kind, effect):
        approved = decide(kind, Verdict.APPROVE)
        rejected = decide(kind, Verdict.REJECT)

        assert approved.next_state == RequestStatus.APPROVED
        assert approved.side_effect == effect
        assert approved.queue_policy == QueuePolicy.REMOVE
        assert rejected.next_state == RequestStatus.REJECTED
        assert rejected.side_effect == SideEffect.NONE
        assert rejected.queue_policy == QueuePolicy.REMOVE

    @pytest.mark.parametrize("kind,policy", [
        (RequestKind.ACCOUNT_OPENING, QueuePolicy.KEEP_AT_FRONT),
        (RequestKind.ADMIN_ACCOUNT, QueuePolicy.KEEP_AT_FRONT),
        (RequestKind.APPOINTMENT, QueuePolicy.MOVE_TO_BACK),
    ])
    def test_invalid_verdict(self, kind, policy):
        decision = decide(kind, Verdict.INVALID)

        assert decision.next_state == RequestStatus.SUBMITTED
        assert decision.side_effect == SideEffect.NONE
        assert decision.queue_policy == policy

    @pytest.mark.parametrize("key,verdict", [
        ("A", Verdict.APPROVE), ("a", Verdict.APPROVE), (" r ", Verdict.REJECT),
        ("x", Verdict.INVALID), ("", Verdict.INVALID), (None, Verdict.INVALID),
    ])
    def test_keystrokes(self, key, verdict):
        assert Verdict.from_key(key) == verdict


class TestAccountRequests:

    def test_submission_checks(self, bank, open_account):
        open_account("alice", national_id="111")
        submit(bank, "bob", "222")

        with pytest.raises(InsufficientFundsException):
            submit(bank, "carol", "333", deposit="49")
        with pytest.raises(ValidationException) as exc:
            submit(bank, "carol", "111")
        assert exc.value.error_code == "DUPLICATE_NATIONAL_ID"
        with pytest.raises(ValidationException) as exc:
            submit(bank, "carol", "222")
        assert exc.value.error_code == "DUPLICATE_NATIONAL_ID"
        with pytest.raises(ValidationException) as exc:
            submit(bank, "BOB", "444")
        assert exc.value.error_code == "DUPLICATE_USERNAME"
        with pytest.raises(ValidationException):
            submit(bank, "carol", "12a")

        assert len(bank.approval_svc.pending_account_requests()) == 1

    def test_fifo_approval_opens_accounts(self, bank):
        submit(bank, "bob", "222", deposit="500")
        submit(bank, "carol", "333", deposit="75")

        first = bank.approval_svc.process_next_account_request(Verdict.APPROVE)
        second = bank.approval_svc.process_next_account_request("A")

        assert (first.request.owner_username, first.account_number) == ("bob", 1001)
        assert (second.request.owner_username, second.account_number) == ("carol", 1002)
        assert bank.accounts.get_account(1002).balance == Decimal("75")
        assert bank.approval_svc.peek_account_request() is None

    def test_reject_removes_without_account(self, bank):
        submit(bank, "bob", "222")

        result = bank.approval_svc.process_next_account_request("R")

        assert result.status == RequestStatus.REJECTED
        assert bank.accounts.count() == 0
        assert bank.approval_svc.pending_account_requests() == []

    def test_invalid_verdict_keeps_head(self, bank):
        submit(bank, "bob", "222")
        submit(bank, "carol", "333")

        result = bank.approval_svc.process_next_account_request("?")

        assert result.status == RequestStatus.SUBMITTED
        assert bank.approval_svc.peek_account_request().owner_username == "bob"

    def test_failed_approval_leaves_request_at_head(self, bank, open_account):
        submit(bank, "bob", "222")
        # Same national ID reaches the ledger through another path
        open_account("zed", national_id="222")

        with pytest.raises(ValidationException):
            bank.approval_svc.process_next_account_request(Verdict.APPROVE)

        assert bank.approval_svc.peek_account_request().owner_username == "bob"
        assert bank.accounts.find_by_owner("bob") is None

    def test_empty_queue(self, bank):
        with pytest.raises(RequestNotFoundException):
            bank.approval_svc.process_next_account_request(Verdict.APPROVE)

    def test_queue_survives_restart(self, bank, reopen):
        submit(bank, "bob", "222", deposit="120.5")
        submit(bank, "carol", "333")

        pending = reopen().approval_svc.pending_account_requests()

        assert [r.owner_username for r in pending] == ["bob", "carol"]
        assert pending[0].initial_deposit == Decimal("120.5")
        assert bank.storage.read_lines("account_requests.txt")[0] == \
            "bob|Bob Test|222|120.5|99001122|Muscat"


class TestAdminRequests:

    def test_approved_admin_can_log_in(self, bank):
        bank.approval_svc.submit_admin_request("boss", "The Boss", "900", "99001122", "Muscat", "pw1")

        result = bank.approval_svc.process_next_admin_request("a")

        assert result.status == RequestStatus.APPROVED
        user = bank.users.authenticate("boss", "pw1", UserRole.ADMIN)
        assert user.role == UserRole.ADMIN

    def test_rejected_admin_has_no_login(self, bank):
        bank.approval_svc.submit_admin_request("boss", "The Boss", "900", "99001122", "Muscat", "pw1")

        bank.approval_svc.process_next_admin_request(Verdict.REJECT)

        assert not bank.users.username_exists("boss")

    def test_duplicates(self, bank):
        bank.approval_svc.submit_admin_request("boss", "The Boss", "900", "99001122", "Muscat", "pw1")

        with pytest.raises(ValidationException):
            bank.approval_svc.submit_admin_request("boss", "Other", "901", "99001122", "Muscat", "pw")
        with pytest.raises(ValidationException):
            bank.approval_svc.submit_admin_request("q", "Other", "902", "99001122", "Muscat", "pw")
        with pytest.raises(ValidationException) as exc:
            bank.approval_svc.submit_admin_request("chief", "Other", "900", "99001122", "Muscat", "pw")
        assert exc.value.error_code == "DUPLICATE_NATIONAL_ID"

    def test_invalid_verdict_keeps_head(self, bank):
        bank.approval_svc.submit_admin_request("boss", "The Boss", "900", "99001122", "Muscat", "pw1")
        bank.approval_svc.submit_admin_request("chief", "The Chief", "901", "99001122", "Muscat", "pw2")

        bank.approval_svc.process_next_admin_request("z")

        assert bank.approval_svc.peek_admin_request().username == "boss"


class TestAppointments:

    def test_invalid_verdict_moves_to_back(self, bank):
        book(bank, "alice")
        book(bank, "bob")
        book(bank, "carol")

        bank.approval_svc.process_next_appointment(Verdict.INVALID)

        assert [a.owner_username for a in bank.approval_svc.pending_appointments()] == [
            "bob", "carol", "alice"
        ]

    def test_approval_copies_to_approved_list(self, bank, reopen):
        book(bank, "alice", service="Loan")
        book(bank, "bob")

        bank.approval_svc.process_next_appointment("A")
        bank.approval_svc.process_next_appointment("R")

        approved = reopen().approval_svc.approved_appointment_list()
        assert [(a.owner_username, a.service, a.status) for a in approved] == [
            ("alice", "Loan", RequestStatus.APPROVED)
        ]
        assert bank.approval_svc.pending_appointments() == []

    def test_appointments_for_user(self, bank):
        book(bank, "alice", day="2025-07-01")
        book(bank, "alice", day="2025-07-02")
        bank.approval_svc.process_next_appointment("A")

        mine = bank.approval_svc.appointments_for("alice")

        assert [(a.date, a.status) for a in mine] == [
            ("2025-07-02", RequestStatus.SUBMITTED), ("2025-07-01", RequestStatus.APPROVED)
        ]

    def test_booking_validation(self, bank):
        with pytest.raises(ValidationException):
            book(bank, "alice", service="Haircut")
        with pytest.raises(ValidationException):
            book(bank, "alice", day="01/07/2025")
        with pytest.raises(ValidationException):
            book(bank, "alice", at="25:00")


class TestLoanDecisions:

    def test_process_loan(self, bank, open_account):
        open_account("rich", balance="6000")
        loan_id = bank.loan_svc.submit("rich", "1000", "car")

        assert bank.approval_svc.process_loan(loan_id, "x").status == LoanStatus.PENDING
        assert bank.approval_svc.process_loan(loan_id, "A").status == LoanStatus.APPROVED
        assert bank.approval_svc.pending_loans() == []
