"""
Transaction Service
Business logic for money movement, history filters and statements
"""

from decimal import Decimal
from datetime import date
from typing import Any, Dict, List, Optional, Union

from core.repositories.account_repository import AccountRepository
from core.repositories.transaction_repository import (
    TransactionRepository, DateRangeFilter, TypeFilter, AmountFilter
)
from core.models.entities import Transaction
from utils.exceptions import BankingSystemException, PersistenceException, ValidationException
from utils.helpers import NumberUtils, LoggingUtils

Amount = Union[Decimal, float, str]

class TransactionService:
    """Service class for transaction processing operations"""

    def __init__(self, account_repo: AccountRepository, transaction_repo: TransactionRepository):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo

    def _last_transaction(self, account_number: int) -> Transaction:
        last = None
        for last in self.transaction_repo.history(account_number):
            pass
        return last

    def _receipt(self, account_number: int, operation: str) -> Optional[str]:
        """Write a receipt for the last record; the money has already moved"""
        account = self.account_repo.get_account(account_number)
        try:
            return self.transaction_repo.write_receipt(account, self._last_transaction(account_number))
        except PersistenceException as e:
            LoggingUtils.log_business_event(
                "receipt_failed", "account", account_number,
                details={'operation': operation, 'error_code': e.error_code}
            )
            return None

    def deposit(self, account_number: int, amount: Amount) -> Dict[str, Any]:
        """Process a deposit and write its receipt.

        A receipt that cannot be written leaves ``receipt`` as None.
        """
        try:
            amount = NumberUtils.to_decimal(amount)
            new_balance = self.account_repo.deposit(account_number, amount)
        except BankingSystemException as e:
            LoggingUtils.log_business_event(
                "deposit_failed", "account", account_number,
                details={'amount': str(amount), 'error_code': e.error_code}
            )
            raise
        return {
            'success': True,
            'account_number': account_number,
            'amount': amount,
            'new_balance': new_balance,
            'receipt': self._receipt(account_number, "deposit")
        }

    def withdraw(self, account_number: int, amount: Amount) -> Dict[str, Any]:
        """Process a withdrawal and write its receipt"""
        try:
            amount = NumberUtils.to_decimal(amount)
            new_balance = self.account_repo.withdraw(account_number, amount)
        except BankingSystemException as e:
            LoggingUtils.log_business_event(
                "withdraw_failed", "account", account_number,
                details={'amount': str(amount), 'error_code': e.error_code}
            )
            raise
        return {
            'success': True,
            'account_number': account_number,
            'amount': amount,
            'new_balance': new_balance,
            'receipt': self._receipt(account_number, "withdraw")
        }

    def transfer(self, from_account_number: int, to_account_number: int, amount: Amount) -> Dict[str, Any]:
        """Move money between two accounts"""
        try:
            amount = NumberUtils.to_decimal(amount)
            from_balance, to_balance = self.account_repo.transfer(
                from_account_number, to_account_number, amount
            )
            return {
                'success': True,
                'from_account': from_account_number,
                'to_account': to_account_number,
                'amount': amount,
                'from_balance': from_balance,
                'to_balance': to_balance
            }
        except BankingSystemException as e:
            LoggingUtils.log_business_event(
                "transfer_failed", "account", from_account_number,
                details={'to_account': to_account_number, 'amount': str(amount),
                         'error_code': e.error_code}
            )
            raise

    # -- history -------------------------------------------------------------

    def get_history(self, account_number: int) -> List[Transaction]:
        self.account_repo.get_account(account_number)
        return list(self.transaction_repo.history(account_number))

    def filter_by_date_range(self, account_number: int, start: date, end: date) -> List[Transaction]:
        if start > end:
            raise ValidationException("Start date must not be after end date")
        return list(self.transaction_repo.query(account_number, DateRangeFilter.for_days(start, end)))

    def filter_by_type(self, account_number: int, text: str) -> List[Transaction]:
        if not text or not text.strip():
            raise ValidationException("Transaction type is required")
        return list(self.transaction_repo.query(account_number, TypeFilter(text)))

    def filter_by_amount(self, account_number: int, amount: Amount) -> List[Transaction]:
        amount = NumberUtils.to_decimal(amount)
        return list(self.transaction_repo.query(account_number, AmountFilter(amount)))

    def last_transactions(self, account_number: int, count: int = 5) -> List[Transaction]:
        return self.get_history(account_number)[-count:]

    def monthly_statement(self, account_number: int, year: int, month: int,
                          save: bool = True) -> Dict[str, Any]:
        """Transactions of one month, optionally written to a statement file"""
        account = self.account_repo.get_account(account_number)
        transactions = self.transaction_repo.monthly_statement(account_number, year, month)
        statement_file = None
        if save:
            statement_file = self.transaction_repo.write_statement(account, year, month, transactions)
        return {
            'account_number': account_number,
            'year': year,
            'month': month,
            'transactions': transactions,
            'statement_file': statement_file
        }

    def all_histories(self) -> Dict[int, List[Transaction]]:
        """History of every open account (admin view)"""
        return {
            account.account_number: list(self.transaction_repo.history(account.account_number))
            for account in self.account_repo.get_all()
        }
