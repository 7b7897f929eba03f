"""
Account Repository
Ledger store: approved accounts, balances and money movement
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
import logging

from core.repositories.base_repository import BaseRepository
from core.repositories.transaction_repository import TransactionRepository, TRANSACTIONS_DIR
from core.models.entities import Account, Transaction, TransactionType
from db.database import FileManager
from utils.exceptions import (
    AccountNotFoundException, InsufficientFundsException,
    PersistenceException, ValidationException
)
from utils.helpers import NumberUtils, LoggingUtils
from utils.validators import BankingValidator

logger = logging.getLogger(__name__)

ACCOUNTS_FILE = 'accounts.txt'
EXPORT_FILE = 'accounts_export.txt'

MINIMUM_BALANCE = Decimal('50.00')
INITIAL_ACCOUNT_NUMBER = 1000

class AccountRepository(BaseRepository):
    """Repository for approved accounts (accounts.txt)"""

    def __init__(self, storage: FileManager, transaction_repo: TransactionRepository):
        super().__init__(storage, ACCOUNTS_FILE)
        self.transaction_repo = transaction_repo
        self._accounts: Dict[int, Account] = {}
        self._last_account_number = INITIAL_ACCOUNT_NUMBER

    # -- persistence ---------------------------------------------------------

    def _serialize(self) -> List[str]:
        return [
            f"{a.account_number},{a.owner_username},{NumberUtils.format_amount(a.balance)},"
            f"{a.national_id},{a.phone},{a.address}"
            for a in self._accounts.values()
        ]

    def _deserialize(self, lines: List[str]) -> None:
        self._accounts = {}
        highest = INITIAL_ACCOUNT_NUMBER
        for line in lines:
            parts = self._split(line, ',', 6)
            if not parts:
                continue
            try:
                account = Account(
                    account_number=int(parts[0]),
                    owner_username=parts[1],
                    balance=Decimal(parts[2]),
                    national_id=parts[3],
                    phone=parts[4],
                    address=parts[5]
                )
            except (ValueError, InvalidOperation):
                logger.warning(f"Skipping unreadable account record: {line!r}")
                continue
            self._accounts[account.account_number] = account
            highest = max(highest, account.account_number)

        # Deleted accounts leave their logs behind; never hand their numbers out again
        for name in self.storage.list_files(TRANSACTIONS_DIR):
            match = re.search(r'acc_(\d+)\.txt$', name)
            if match:
                highest = max(highest, int(match.group(1)))

        self._last_account_number = highest

    @property
    def last_account_number(self) -> int:
        return self._last_account_number

    def _commit(self, entries: List[Tuple[int, TransactionType, Decimal, Decimal]]) -> List[Transaction]:
        """Persist an in-memory change: log entries first, then the accounts file.

        Every write is attempted even if an earlier one fails; the first
        failure is raised afterwards so the caller learns the change is not
        yet on disk.
        """
        failure = None
        transactions = []
        for account_number, txn_type, amount, balance in entries:
            try:
                transactions.append(self.transaction_repo.append(account_number, txn_type, amount, balance))
            except PersistenceException as e:
                failure = failure or e
        try:
            self.save()
        except PersistenceException as e:
            failure = failure or e
        if failure:
            raise failure
        return transactions

    # -- queries -------------------------------------------------------------

    def find_by_number(self, account_number: int) -> Optional[Account]:
        return self._accounts.get(account_number)

    def get_account(self, account_number: int) -> Account:
        account = self._accounts.get(account_number)
        if not account:
            raise AccountNotFoundException(f"Account {account_number} not found")
        return account

    def find_by_owner(self, username: str) -> Optional[Account]:
        """Account owned by a username (case-insensitive)"""
        if not username:
            return None
        wanted = username.lower()
        for account in self._accounts.values():
            if account.owner_username.lower() == wanted:
                return account
        return None

    def find_by_national_id(self, national_id: str) -> Optional[Account]:
        for account in self._accounts.values():
            if account.national_id == national_id:
                return account
        return None

    def national_id_exists(self, national_id: str) -> bool:
        return self.find_by_national_id(national_id) is not None

    def search(self, term: str) -> List[Account]:
        """Accounts whose national ID matches exactly or whose owner contains the term"""
        term = (term or "").strip().lower()
        if not term:
            return []
        return [
            a for a in self._accounts.values()
            if a.national_id == term or term in a.owner_username.lower()
        ]

    def get_all(self) -> List[Account]:
        return list(self._accounts.values())

    def count(self) -> int:
        return len(self._accounts)

    def top_balances(self, limit: int = 3) -> List[Account]:
        return sorted(self._accounts.values(), key=lambda a: a.balance, reverse=True)[:limit]

    def richest(self) -> List[Account]:
        """Every account sharing the highest balance"""
        if not self._accounts:
            return []
        highest = max(a.balance for a in self._accounts.values())
        return [a for a in self._accounts.values() if a.balance == highest]

    def total_balance(self) -> Decimal:
        return sum((a.balance for a in self._accounts.values()), Decimal('0'))

    def average_balance(self) -> Optional[Decimal]:
        if not self._accounts:
            return None
        return NumberUtils.round_currency(self.total_balance() / len(self._accounts))

    def accounts_above(self, threshold: Decimal) -> List[Account]:
        return [a for a in self._accounts.values() if a.balance > threshold]

    # -- mutations -----------------------------------------------------------

    def open_account(self, owner_username: str, national_id: str, initial_deposit: Decimal,
                     phone: str, address: str) -> int:
        """Create an account numbered one past the highest number ever issued"""
        BankingValidator.validate_amount(initial_deposit)
        if initial_deposit < MINIMUM_BALANCE:
            raise InsufficientFundsException(
                f"Initial deposit must be at least {MINIMUM_BALANCE}", "BELOW_MINIMUM_BALANCE"
            )

        with self._lock:
            if self.national_id_exists(national_id):
                raise ValidationException("National ID already in use", "DUPLICATE_NATIONAL_ID")
            if self.find_by_owner(owner_username):
                raise ValidationException(
                    f"User '{owner_username}' already has an account", "DUPLICATE_USERNAME"
                )

            self._last_account_number += 1
            account_number = self._last_account_number
            self._accounts[account_number] = Account(
                account_number=account_number,
                owner_username=owner_username,
                balance=initial_deposit,
                national_id=national_id,
                phone=phone,
                address=address
            )
            self._commit([(account_number, TransactionType.DEPOSIT, initial_deposit, initial_deposit)])

        LoggingUtils.log_business_event(
            "account_opened", "account", account_number, username=owner_username,
            details={'initial_deposit': str(initial_deposit)}
        )
        return account_number

    def deposit(self, account_number: int, amount: Decimal) -> Decimal:
        """Add funds, returning the new balance"""
        BankingValidator.validate_amount(amount)
        with self._lock:
            account = self.get_account(account_number)
            account.balance += amount
            self._commit([(account_number, TransactionType.DEPOSIT, amount, account.balance)])
            new_balance = account.balance

        LoggingUtils.log_transaction("deposit", account_number, amount,
                                     details={'new_balance': str(new_balance)})
        return new_balance

    def withdraw(self, account_number: int, amount: Decimal) -> Decimal:
        """Remove funds unless that would leave less than the minimum balance"""
        BankingValidator.validate_amount(amount)
        with self._lock:
            account = self.get_account(account_number)
            if account.balance - amount < MINIMUM_BALANCE:
                raise InsufficientFundsException(
                    f"Withdrawal would leave the balance below the minimum of {MINIMUM_BALANCE}"
                )
            account.balance -= amount
            self._commit([(account_number, TransactionType.WITHDRAW, amount, account.balance)])
            new_balance = account.balance

        LoggingUtils.log_transaction("withdraw", account_number, amount,
                                     details={'new_balance': str(new_balance)})
        return new_balance

    def transfer(self, from_account_number: int, to_account_number: int,
                 amount: Decimal) -> Tuple[Decimal, Decimal]:
        """Move funds between two accounts; both legs apply or neither does"""
        BankingValidator.validate_amount(amount)
        if from_account_number == to_account_number:
            raise ValidationException("Cannot transfer to the same account")

        with self._lock:
            source = self.get_account(from_account_number)
            target = self.get_account(to_account_number)
            if source.balance - amount < MINIMUM_BALANCE:
                raise InsufficientFundsException(
                    f"Transfer would leave the source balance below the minimum of {MINIMUM_BALANCE}"
                )

            source.balance -= amount
            target.balance += amount
            self._commit([
                (from_account_number, TransactionType.TRANSFER_OUT, amount, source.balance),
                (to_account_number, TransactionType.TRANSFER_IN, amount, target.balance)
            ])
            balances = (source.balance, target.balance)

        LoggingUtils.log_transaction(
            "transfer", from_account_number, amount,
            details={'to_account': to_account_number, 'from_balance': str(balances[0]),
                     'to_balance': str(balances[1])}
        )
        return balances

    def credit_loan(self, owner_username: str, amount: Decimal) -> Account:
        """Credit an approved loan to the owner's account"""
        BankingValidator.validate_amount(amount)
        with self._lock:
            account = self.find_by_owner(owner_username)
            if not account:
                raise AccountNotFoundException(f"No approved account for '{owner_username}'")
            account.balance += amount
            self._commit([(account.account_number, TransactionType.LOAN_APPROVED, amount, account.balance)])

        LoggingUtils.log_transaction("loan_credit", account.account_number, amount,
                                     username=owner_username)
        return account

    def delete_account(self, account_number: int) -> Account:
        """Remove an account; its transaction log stays on disk"""
        with self._lock:
            account = self._accounts.get(account_number)
            if not account:
                raise AccountNotFoundException(f"Account {account_number} not found", "NOT_FOUND")
            del self._accounts[account_number]
            self.save()

        LoggingUtils.log_business_event("account_deleted", "account", account_number,
                                        username=account.owner_username)
        return account

    def update_contact(self, account_number: int, phone: str = None, address: str = None,
                       national_id: str = None) -> Account:
        """Change phone, address or national ID"""
        with self._lock:
            account = self.get_account(account_number)
            if national_id is not None and national_id != account.national_id:
                if self.national_id_exists(national_id):
                    raise ValidationException("National ID already in use", "DUPLICATE_NATIONAL_ID")
                account.national_id = national_id
            if phone is not None:
                account.phone = phone
            if address is not None:
                account.address = address
            self.save()
        return account

    def rename_owner(self, old_username: str, new_username: str) -> Optional[Account]:
        with self._lock:
            account = self.find_by_owner(old_username)
            if account:
                account.owner_username = new_username
                self.save()
            return account

    def export_csv(self, filename: str = EXPORT_FILE) -> str:
        """Write a CSV export of every account and return its path"""
        lines = ["AccountNumber,Username,NationalID,Balance"]
        lines.extend(
            f"{a.account_number},{a.owner_username},{a.national_id},{NumberUtils.format_amount(a.balance)}"
            for a in self._accounts.values()
        )
        self.storage.write_lines(filename, lines)
        return self.storage.config.path_for(filename)

    def clear(self):
        with self._lock:
            self._accounts = {}
            self._last_account_number = INITIAL_ACCOUNT_NUMBER
