"""
Loan Repository
Handles persistence of loan applications (loan_requests.txt)
"""

from typing import Optional, List
from decimal import Decimal, InvalidOperation
import logging

from core.repositories.base_repository import BaseRepository
from core.models.entities import LoanRequest, LoanStatus
from db.database import FileManager
from utils.exceptions import ValidationException, LoanNotFoundException
from utils.helpers import NumberUtils

logger = logging.getLogger(__name__)

LOANS_FILE = 'loan_requests.txt'

class LoanRepository(BaseRepository):
    """Repository for loan applications.

    Records are never removed, so a loan's id is its 1-based position in the
    file and stays stable across restarts.
    """

    def __init__(self, storage: FileManager):
        super().__init__(storage, LOANS_FILE)
        self._loans: List[LoanRequest] = []

    def _serialize(self) -> List[str]:
        return [
            f"{loan.owner_username}|{NumberUtils.format_amount(loan.amount)}|{loan.reason}|"
            f"{loan.status.value}|{NumberUtils.format_amount(loan.interest_rate)}"
            for loan in self._loans
        ]

    def _deserialize(self, lines: List[str]) -> None:
        self._loans = []
        for line in lines:
            parts = self._split(line, '|', 5)
            if not parts:
                continue
            try:
                loan = LoanRequest(
                    loan_id=len(self._loans) + 1,
                    owner_username=parts[0],
                    amount=Decimal(parts[1]),
                    reason=parts[2],
                    status=LoanStatus(parts[3].strip()),
                    interest_rate=Decimal(parts[4])
                )
            except (ValueError, InvalidOperation):
                logger.warning(f"Skipping unreadable loan record: {line!r}")
                continue
            self._loans.append(loan)

    def create_loan(self, username: str, amount: Decimal, reason: str,
                    interest_rate: Decimal) -> LoanRequest:
        """Store a new pending loan application"""
        if not username or amount <= 0:
            raise ValidationException("Username and positive amount are required", "INVALID_AMOUNT")

        with self._lock:
            loan = LoanRequest(
                loan_id=len(self._loans) + 1,
                owner_username=username,
                amount=amount,
                reason=reason,
                status=LoanStatus.PENDING,
                interest_rate=interest_rate
            )
            self._loans.append(loan)
            self.save()
        return loan

    def find_loan_by_id(self, loan_id: int) -> Optional[LoanRequest]:
        """Find loan by ID"""
        if not isinstance(loan_id, int) or loan_id < 1 or loan_id > len(self._loans):
            return None
        return self._loans[loan_id - 1]

    def get_loan(self, loan_id: int) -> LoanRequest:
        loan = self.find_loan_by_id(loan_id)
        if not loan:
            raise LoanNotFoundException(f"Loan {loan_id} not found")
        return loan

    def find_by_customer(self, username: str) -> List[LoanRequest]:
        """Find all loans for a customer"""
        return [loan for loan in self._loans if loan.owner_username == username]

    def find_active_loan(self, username: str) -> Optional[LoanRequest]:
        """The customer's pending or approved loan, if any"""
        for loan in self._loans:
            if loan.owner_username == username and loan.is_active:
                return loan
        return None

    def get_pending_approvals(self) -> List[LoanRequest]:
        """Get loans pending approval, oldest first"""
        return [loan for loan in self._loans if loan.status == LoanStatus.PENDING]

    def get_all_loans(self) -> List[LoanRequest]:
        """Get ALL loans in the system (admin use only)"""
        return list(self._loans)

    def update_status(self, loan_id: int, status: LoanStatus) -> LoanRequest:
        with self._lock:
            loan = self.get_loan(loan_id)
            loan.status = status
            self.save()
        return loan

    def rename_owner(self, old_username: str, new_username: str) -> int:
        """Carry loans over to a changed username; returns how many moved"""
        with self._lock:
            moved = 0
            for loan in self._loans:
                if loan.owner_username == old_username:
                    loan.owner_username = new_username
                    moved += 1
            if moved:
                self.save()
            return moved

    def total_approved_interest(self) -> Decimal:
        """Sum of amount * rate over approved loans"""
        return NumberUtils.round_currency(sum(
            (loan.amount * loan.interest_rate for loan in self._loans
             if loan.status == LoanStatus.APPROVED),
            Decimal('0')
        ))

    def clear(self):
        with self._lock:
            self._loans = []
