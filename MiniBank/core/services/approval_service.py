"""
Approval Service
Turns an administrator's verdict on the oldest pending request into its
effect on the ledger, the identity store or the appointment book.
"""

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Union
import logging

from core.models.entities import (
    AccountRequest, AdminAccountRequest, Appointment, LoanRequest,
    RequestKind, RequestStatus, UserRole, Verdict
)
from core.repositories.account_repository import AccountRepository, MINIMUM_BALANCE
from core.repositories.request_repository import (
    AccountRequestRepository, AdminRequestRepository,
    AppointmentRepository, ApprovedAppointmentRepository
)
from core.repositories.user_repository import UserRepository
from core.services.loan_service import LoanService
from utils.exceptions import InsufficientFundsException, ValidationException
from utils.helpers import NumberUtils, SecurityUtils, StringUtils, LoggingUtils
from utils.validators import BankingValidator

logger = logging.getLogger(__name__)

APPOINTMENT_SERVICES = ('Open Account', 'Loan', 'Consultation', 'Other')

class SideEffect(Enum):
    NONE = 'none'
    OPEN_ACCOUNT = 'open_account'
    CREATE_ADMIN = 'create_admin'
    BOOK_APPOINTMENT = 'book_appointment'

class QueuePolicy(Enum):
    REMOVE = 'remove'
    KEEP_AT_FRONT = 'keep_at_front'
    MOVE_TO_BACK = 'move_to_back'

@dataclass(frozen=True)
class Decision:
    next_state: RequestStatus
    side_effect: SideEffect
    queue_policy: QueuePolicy

_APPROVAL_EFFECTS = {
    RequestKind.ACCOUNT_OPENING: SideEffect.OPEN_ACCOUNT,
    RequestKind.ADMIN_ACCOUNT: SideEffect.CREATE_ADMIN,
    RequestKind.APPOINTMENT: SideEffect.BOOK_APPOINTMENT,
}

# Account and admin requests must be settled before the next one is shown;
# an appointment with a bad verdict goes to the back of the line.
_INVALID_VERDICT_POLICY = {
    RequestKind.ACCOUNT_OPENING: QueuePolicy.KEEP_AT_FRONT,
    RequestKind.ADMIN_ACCOUNT: QueuePolicy.KEEP_AT_FRONT,
    RequestKind.APPOINTMENT: QueuePolicy.MOVE_TO_BACK,
}

def decide(kind: RequestKind, verdict: Verdict) -> Decision:
    """Pure transition function for a Submitted request"""
    if verdict == Verdict.APPROVE:
        return Decision(RequestStatus.APPROVED, _APPROVAL_EFFECTS[kind], QueuePolicy.REMOVE)
    if verdict == Verdict.REJECT:
        return Decision(RequestStatus.REJECTED, SideEffect.NONE, QueuePolicy.REMOVE)
    return Decision(RequestStatus.SUBMITTED, SideEffect.NONE, _INVALID_VERDICT_POLICY[kind])

@dataclass
class ProcessResult:
    """Outcome of one processing step, for the caller to render"""
    kind: RequestKind
    request: Union[AccountRequest, AdminAccountRequest, Appointment]
    decision: Decision
    account_number: Optional[int] = None

    @property
    def status(self) -> RequestStatus:
        return self.decision.next_state

class ApprovalService:
    """Service class for the request queues and their decisions"""

    def __init__(self, user_repo: UserRepository, account_repo: AccountRepository,
                 account_requests: AccountRequestRepository, admin_requests: AdminRequestRepository,
                 appointments: AppointmentRepository, approved_appointments: ApprovedAppointmentRepository,
                 loan_service: LoanService):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.account_requests = account_requests
        self.admin_requests = admin_requests
        self.appointments = appointments
        self.approved_appointments = approved_appointments
        self.loan_service = loan_service

    # -- uniqueness ----------------------------------------------------------

    def national_id_taken(self, national_id: str) -> bool:
        """True if an approved account or a pending account request holds the ID"""
        return (self.account_repo.national_id_exists(national_id)
                or self.account_requests.national_id_pending(national_id))

    def _check_contact(self, full_name: str, national_id: str, phone: str, address: str):
        BankingValidator.validate_required(full_name, "Full name")
        BankingValidator.validate_digits(national_id, "National ID")
        BankingValidator.validate_digits(phone, "Phone")
        BankingValidator.validate_required(address, "Address")

    def validate_account_request(self, username: str, full_name: str, national_id: str,
                                 initial_deposit: Union[Decimal, float, str],
                                 phone: str, address: str) -> AccountRequest:
        """Build an account request, or raise the first reason it cannot be queued"""
        BankingValidator.validate_username(username)
        national_id = (national_id or "").strip()
        phone = (phone or "").strip()
        self._check_contact(full_name, national_id, phone, address)

        deposit = NumberUtils.to_decimal(initial_deposit)
        BankingValidator.validate_amount(deposit)
        if deposit < MINIMUM_BALANCE:
            raise InsufficientFundsException(f"Initial deposit must be at least {MINIMUM_BALANCE}")

        if self.national_id_taken(national_id):
            raise ValidationException("National ID already exists or is pending", "DUPLICATE_NATIONAL_ID")
        if (self.account_repo.find_by_owner(username)
                or self.account_requests.username_pending(username)
                or self.admin_requests.username_pending(username)):
            raise ValidationException(
                f"User '{username}' already has an account or a pending request", "DUPLICATE_USERNAME"
            )

        return AccountRequest(
            owner_username=username,
            full_name=StringUtils.clean_string(full_name),
            national_id=national_id,
            initial_deposit=deposit,
            phone=phone,
            address=StringUtils.clean_string(address)
        )

    # -- submission ----------------------------------------------------------

    def submit_account_request(self, username: str, full_name: str, national_id: str,
                               initial_deposit: Union[Decimal, float, str],
                               phone: str, address: str) -> AccountRequest:
        """Queue an account-opening application"""
        request = self.validate_account_request(username, full_name, national_id,
                                                initial_deposit, phone, address)
        self.account_requests.enqueue(request)
        LoggingUtils.log_business_event(
            "account_request_submitted", "account_request", request.national_id, username=username,
            details={'initial_deposit': str(request.initial_deposit)}
        )
        return request

    def submit_admin_request(self, username: str, full_name: str, national_id: str,
                             phone: str, address: str, password: str) -> AdminAccountRequest:
        """Queue an application for an administrator login"""
        BankingValidator.validate_username(username)
        BankingValidator.validate_password(password)
        national_id = (national_id or "").strip()
        phone = (phone or "").strip()
        self._check_contact(full_name, national_id, phone, address)

        if (self.user_repo.username_exists(username)
                or self.admin_requests.username_pending(username)
                or self.account_requests.username_pending(username)):
            raise ValidationException("Username already exists or is pending", "DUPLICATE_USERNAME")
        if self.admin_requests.national_id_pending(national_id):
            raise ValidationException("An admin request with this National ID is pending",
                                      "DUPLICATE_NATIONAL_ID")

        request = AdminAccountRequest(
            username=username,
            full_name=StringUtils.clean_string(full_name),
            national_id=national_id,
            phone=phone,
            address=StringUtils.clean_string(address),
            password_hash=SecurityUtils.generate_hash(password)
        )
        self.admin_requests.enqueue(request)
        LoggingUtils.log_security_event("admin_request_submitted", username=username)
        return request

    def book_appointment(self, username: str, service: str, date: str, time: str,
                         reason: str = "") -> Appointment:
        """Queue an appointment request"""
        if service not in APPOINTMENT_SERVICES:
            raise ValidationException(f"Service must be one of: {', '.join(APPOINTMENT_SERVICES)}")
        BankingValidator.validate_date(date)
        BankingValidator.validate_time(time)
        BankingValidator.validate_no_delimiters(reason or "", "Reason")

        appointment = Appointment(
            owner_username=username,
            service=service,
            date=date.strip(),
            time=time.strip(),
            reason=(reason or "").strip()
        )
        self.appointments.enqueue(appointment)
        LoggingUtils.log_business_event(
            "appointment_requested", "appointment", f"{appointment.date} {appointment.time}",
            username=username, details={'service': service}
        )
        return appointment

    # -- queue views ---------------------------------------------------------

    def peek_account_request(self) -> Optional[AccountRequest]:
        return self.account_requests.peek()

    def peek_admin_request(self) -> Optional[AdminAccountRequest]:
        return self.admin_requests.peek()

    def peek_appointment(self) -> Optional[Appointment]:
        return self.appointments.peek()

    def pending_account_requests(self) -> List[AccountRequest]:
        return self.account_requests.get_all()

    def pending_admin_requests(self) -> List[AdminAccountRequest]:
        return self.admin_requests.get_all()

    def pending_appointments(self) -> List[Appointment]:
        return self.appointments.get_all()

    def approved_appointment_list(self) -> List[Appointment]:
        return self.approved_appointments.get_all()

    def appointments_for(self, username: str) -> List[Appointment]:
        """A customer's pending then approved appointments"""
        return self.appointments.for_user(username) + self.approved_appointments.for_user(username)

    # -- processing ----------------------------------------------------------

    @staticmethod
    def _apply_policy(queue, decision: Decision):
        if decision.queue_policy == QueuePolicy.REMOVE:
            queue.dequeue()
        elif decision.queue_policy == QueuePolicy.MOVE_TO_BACK:
            queue.requeue_head()

    def process_next_account_request(self, verdict: Union[Verdict, str]) -> ProcessResult:
        """Decide the oldest account request.

        Approval opens the account before the request leaves the queue, so a
        uniqueness failure leaves the request at the head.
        """
        verdict = verdict if isinstance(verdict, Verdict) else Verdict.from_key(verdict)
        request = self.account_requests.head()
        decision = decide(RequestKind.ACCOUNT_OPENING, verdict)
        result = ProcessResult(RequestKind.ACCOUNT_OPENING, request, decision)

        if decision.side_effect == SideEffect.OPEN_ACCOUNT:
            if self.account_repo.national_id_exists(request.national_id):
                raise ValidationException("National ID already belongs to an account", "DUPLICATE_NATIONAL_ID")
            result.account_number = self.account_repo.open_account(
                request.owner_username, request.national_id, request.initial_deposit,
                request.phone, request.address
            )

        self._apply_policy(self.account_requests, decision)
        if decision.next_state != RequestStatus.SUBMITTED:
            request.status = decision.next_state
        self._log_decision(result, request.owner_username)
        return result

    def process_next_admin_request(self, verdict: Union[Verdict, str]) -> ProcessResult:
        """Decide the oldest admin request; approval creates the admin login"""
        verdict = verdict if isinstance(verdict, Verdict) else Verdict.from_key(verdict)
        request = self.admin_requests.head()
        decision = decide(RequestKind.ADMIN_ACCOUNT, verdict)
        result = ProcessResult(RequestKind.ADMIN_ACCOUNT, request, decision)

        if decision.side_effect == SideEffect.CREATE_ADMIN:
            self.user_repo.add_credential(request.username, request.password_hash, UserRole.ADMIN)

        self._apply_policy(self.admin_requests, decision)
        if decision.next_state != RequestStatus.SUBMITTED:
            request.status = decision.next_state
        self._log_decision(result, request.username)
        return result

    def process_next_appointment(self, verdict: Union[Verdict, str]) -> ProcessResult:
        """Decide the oldest appointment; approval copies it to the approved list"""
        verdict = verdict if isinstance(verdict, Verdict) else Verdict.from_key(verdict)
        request = self.appointments.head()
        decision = decide(RequestKind.APPOINTMENT, verdict)
        result = ProcessResult(RequestKind.APPOINTMENT, request, decision)

        if decision.side_effect == SideEffect.BOOK_APPOINTMENT:
            self.approved_appointments.enqueue(replace(request, status=RequestStatus.APPROVED))

        self._apply_policy(self.appointments, decision)
        if decision.next_state != RequestStatus.SUBMITTED:
            request.status = decision.next_state
        self._log_decision(result, request.owner_username)
        return result

    def process_loan(self, loan_id: int, verdict: Union[Verdict, str]) -> LoanRequest:
        """Decide a pending loan; an invalid verdict leaves it pending"""
        verdict = verdict if isinstance(verdict, Verdict) else Verdict.from_key(verdict)
        if verdict == Verdict.INVALID:
            logger.info(f"Invalid verdict for loan {loan_id}, left pending")
            return self.loan_service.loan_repo.get_loan(loan_id)
        return self.loan_service.decide(loan_id, verdict == Verdict.APPROVE)

    def pending_loans(self) -> List[LoanRequest]:
        return self.loan_service.pending()

    @staticmethod
    def _log_decision(result: ProcessResult, username: str):
        if result.decision.next_state == RequestStatus.SUBMITTED:
            logger.info(f"Invalid verdict on {result.kind.value}, policy {result.decision.queue_policy.value}")
            return
        LoggingUtils.log_business_event(
            f"{result.kind.value}_{result.decision.next_state.value.lower()}",
            result.kind.value, result.account_number, username=username
        )
