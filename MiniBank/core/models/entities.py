"""
Data Models for MiniBank Ledger System
Dataclasses representing the records held in each flat-file store
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from enum import Enum

# Enums mirror the literal values written to disk
class UserRole(Enum):
    ADMIN = 'Admin'
    CUSTOMER = 'Customer'

class TransactionType(Enum):
    DEPOSIT = 'Deposit'
    WITHDRAW = 'Withdraw'
    TRANSFER_OUT = 'Transfer Out'
    TRANSFER_IN = 'Transfer In'
    LOAN_APPROVED = 'Loan Approved'

class LoanStatus(Enum):
    PENDING = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'

class RequestStatus(Enum):
    SUBMITTED = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'

class RequestKind(Enum):
    ACCOUNT_OPENING = 'account_opening'
    ADMIN_ACCOUNT = 'admin_account'
    APPOINTMENT = 'appointment'

class Verdict(Enum):
    APPROVE = 'A'
    REJECT = 'R'
    INVALID = '?'

    @classmethod
    def from_key(cls, key: Optional[str]) -> 'Verdict':
        """Map an admin keystroke to a verdict; anything unexpected is INVALID"""
        if not key:
            return cls.INVALID
        key = key.strip().upper()
        if key == 'A':
            return cls.APPROVE
        if key == 'R':
            return cls.REJECT
        return cls.INVALID

@dataclass
class Credential:
    """Login credential entity"""
    username: str = ""
    password_hash: str = ""
    role: UserRole = UserRole.CUSTOMER
    locked: bool = False
    failed_attempts: int = 0

@dataclass
class Account:
    """Approved bank account entity"""
    account_number: int = 0
    owner_username: str = ""
    balance: Decimal = Decimal('0.00')
    national_id: str = ""
    phone: str = ""
    address: str = ""

@dataclass
class AccountRequest:
    """Pending account-opening application"""
    owner_username: str = ""
    full_name: str = ""
    national_id: str = ""
    initial_deposit: Decimal = Decimal('0.00')
    phone: str = ""
    address: str = ""
    status: RequestStatus = RequestStatus.SUBMITTED

@dataclass
class AdminAccountRequest:
    """Pending application for an administrator login"""
    username: str = ""
    full_name: str = ""
    national_id: str = ""
    phone: str = ""
    address: str = ""
    password_hash: str = ""
    status: RequestStatus = RequestStatus.SUBMITTED

@dataclass
class Appointment:
    """Branch appointment, pending or approved"""
    owner_username: str = ""
    service: str = ""
    date: str = ""
    time: str = ""
    reason: str = ""
    status: RequestStatus = RequestStatus.SUBMITTED

@dataclass
class LoanRequest:
    """Loan application entity"""
    loan_id: int = 0
    owner_username: str = ""
    amount: Decimal = Decimal('0.00')
    reason: str = ""
    status: LoanStatus = LoanStatus.PENDING
    interest_rate: Decimal = Decimal('0.05')

    @property
    def is_active(self) -> bool:
        return self.status in (LoanStatus.PENDING, LoanStatus.APPROVED)

@dataclass
class Transaction:
    """Transaction log entry"""
    account_number: int = 0
    txn_type: TransactionType = TransactionType.DEPOSIT
    amount: Decimal = Decimal('0.00')
    balance_after_txn: Decimal = Decimal('0.00')
    txn_time: datetime = field(default_factory=datetime.now)

@dataclass
class ServiceFeedback:
    """Customer feedback about a bank service"""
    username: str = ""
    service: str = ""
    text: str = ""
    submitted_at: datetime = field(default_factory=datetime.now)

@dataclass
class ExchangeRates:
    """Display-only conversion rates (1 OMR = n units)"""
    usd: Decimal = Decimal('2.60')
    eur: Decimal = Decimal('2.45')
    sar: Decimal = Decimal('9.75')
