"""
Loan Service - Business logic for loan applications and decisions.
"""
from decimal import Decimal
from typing import List, Union
import logging

from core.models.entities import LoanRequest, LoanStatus
from core.repositories.loan_repository import LoanRepository
from core.repositories.account_repository import AccountRepository
from utils.exceptions import (
    AccountNotFoundException, ActiveLoanExistsException,
    InsufficientFundsException, PersistenceException
)
from utils.helpers import NumberUtils, LoggingUtils
from utils.validators import BankingValidator

logger = logging.getLogger(__name__)

# Balance a customer must hold before applying
LOAN_MIN_BALANCE = Decimal("5000")
# Flat rate fixed at submission time
LOAN_INTEREST_RATE = Decimal("0.05")


class LoanService:
    def __init__(self, loan_repo: LoanRepository, account_repo: AccountRepository):
        self.loan_repo = loan_repo
        self.account_repo = account_repo

    def submit(self, username: str, amount: Union[Decimal, float, str], reason: str) -> int:
        """Apply for a loan and return its id.

        The applicant needs an approved account holding at least
        LOAN_MIN_BALANCE and no other pending or approved loan.
        """
        amount = NumberUtils.to_decimal(amount)
        BankingValidator.validate_amount(amount)
        BankingValidator.validate_required(reason, "Reason")

        account = self.account_repo.find_by_owner(username)
        if not account:
            raise AccountNotFoundException(f"No approved account for '{username}'")

        if account.balance < LOAN_MIN_BALANCE:
            raise InsufficientFundsException(
                f"A balance of at least {LOAN_MIN_BALANCE} is required to apply for a loan",
                "INSUFFICIENT_BALANCE"
            )

        active = self.loan_repo.find_active_loan(username)
        if active:
            raise ActiveLoanExistsException(
                f"Loan {active.loan_id} is already {active.status.value.lower()}"
            )

        loan = self.loan_repo.create_loan(username, amount, reason.strip(), LOAN_INTEREST_RATE)
        LoggingUtils.log_business_event(
            "loan_submitted", "loan", loan.loan_id, username=username,
            details={'amount': str(amount), 'interest_rate': str(LOAN_INTEREST_RATE)}
        )
        return loan.loan_id

    def decide(self, loan_id: int, approve: bool) -> LoanRequest:
        """Approve or reject a pending loan; decided loans are returned unchanged"""
        loan = self.loan_repo.get_loan(loan_id)
        if loan.status != LoanStatus.PENDING:
            logger.info(f"Loan {loan_id} already {loan.status.value}, nothing to decide")
            return loan

        if not approve:
            self.loan_repo.update_status(loan_id, LoanStatus.REJECTED)
            LoggingUtils.log_business_event("loan_rejected", "loan", loan_id, username=loan.owner_username)
            return loan

        failure = None
        try:
            self.account_repo.credit_loan(loan.owner_username, loan.amount)
        except PersistenceException as e:
            # The credit is applied in memory; the loan must not stay pending or it could be paid twice
            failure = e
        try:
            self.loan_repo.update_status(loan_id, LoanStatus.APPROVED)
        except PersistenceException as e:
            failure = failure or e

        LoggingUtils.log_business_event(
            "loan_approved", "loan", loan_id, username=loan.owner_username,
            details={'amount': str(loan.amount)}
        )
        if failure:
            raise failure
        return loan

    def pending(self) -> List[LoanRequest]:
        return self.loan_repo.get_pending_approvals()

    def for_user(self, username: str) -> List[LoanRequest]:
        return self.loan_repo.find_by_customer(username)

    def all(self) -> List[LoanRequest]:
        return self.loan_repo.get_all_loans()

    def total_interest(self) -> Decimal:
        """Interest earned on approved loans"""
        return self.loan_repo.total_approved_interest()
