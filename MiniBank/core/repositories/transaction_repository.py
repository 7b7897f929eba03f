"""
Transaction Repository
Append-only transaction log, one file per account
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Union
import logging
import threading

from core.models.entities import Account, Transaction, TransactionType
from db.database import FileManager
from utils.exceptions import ValidationException
from utils.helpers import DateUtils, NumberUtils
from utils.validators import BankingValidator

logger = logging.getLogger(__name__)

TRANSACTIONS_DIR = 'transactions'
STATEMENTS_DIR = 'statements'
RECEIPTS_DIR = 'receipts'

@dataclass(frozen=True)
class DateRangeFilter:
    """Transactions whose timestamp falls within [start, end]"""
    start: datetime
    end: datetime

    @classmethod
    def for_days(cls, start_day: date, end_day: date) -> 'DateRangeFilter':
        return cls(*DateUtils.day_bounds(start_day, end_day))

    def matches(self, txn: Transaction) -> bool:
        return self.start <= txn.txn_time <= self.end

@dataclass(frozen=True)
class TypeFilter:
    """Transactions whose type contains the given text (case-insensitive)"""
    text: str

    def matches(self, txn: Transaction) -> bool:
        return self.text.strip().lower() in txn.txn_type.value.lower()

@dataclass(frozen=True)
class AmountFilter:
    """Transactions for exactly the given amount"""
    amount: Decimal

    def matches(self, txn: Transaction) -> bool:
        return txn.amount == self.amount

TransactionFilter = Union[DateRangeFilter, TypeFilter, AmountFilter]

class TransactionQuery:
    """Lazy, restartable view over one account's log.

    Each iteration re-reads the log, so a query object can be iterated again
    and will see transactions appended since.
    """

    def __init__(self, repo: 'TransactionRepository', account_number: int,
                 predicate: Optional[TransactionFilter] = None):
        self._repo = repo
        self.account_number = account_number
        self.predicate = predicate

    def __iter__(self) -> Iterator[Transaction]:
        for txn in self._repo._read(self.account_number):
            if self.predicate is None or self.predicate.matches(txn):
                yield txn

class TransactionRepository:
    """Repository for per-account transaction logs (transactions/acc_<n>.txt)"""

    def __init__(self, storage: FileManager, clock: Callable[[], datetime] = datetime.now):
        self.storage = storage
        self.clock = clock
        self._lock = threading.RLock()
        # Lines that could not be written yet, keyed by file name
        self._pending: Dict[str, List[str]] = {}

    @staticmethod
    def _filename(account_number: int) -> str:
        return f"{TRANSACTIONS_DIR}/acc_{account_number}.txt"

    @staticmethod
    def format_line(txn: Transaction) -> str:
        return (
            f"{DateUtils.format_timestamp(txn.txn_time)} | {txn.txn_type.value} | "
            f"Amount: {NumberUtils.format_amount(txn.amount)} | "
            f"Balance: {NumberUtils.format_amount(txn.balance_after_txn)}"
        )

    @staticmethod
    def parse_line(account_number: int, line: str) -> Optional[Transaction]:
        """Parse one log line, returning None for anything unreadable"""
        parts = [p.strip() for p in line.split('|')]
        if len(parts) < 4:
            return None
        txn_time = DateUtils.parse_timestamp(parts[0])
        if txn_time is None:
            return None
        try:
            txn_type = TransactionType(parts[1])
            amount = Decimal(parts[2].replace('Amount:', '', 1).strip())
            balance = Decimal(parts[3].replace('Balance:', '', 1).strip())
        except (ValueError, InvalidOperation):
            logger.warning(f"Skipping unreadable transaction line: {line!r}")
            return None
        return Transaction(
            account_number=account_number,
            txn_type=txn_type,
            amount=amount,
            balance_after_txn=balance,
            txn_time=txn_time
        )

    @property
    def is_dirty(self) -> bool:
        return bool(self._pending)

    def append(self, account_number: int, txn_type: TransactionType,
               amount: Decimal, balance_after_txn: Decimal) -> Transaction:
        """Append a record stamped with the current time.

        If the file write fails the line is held in memory, still shows up in
        queries, and is written ahead of the next append or flush.
        """
        with self._lock:
            txn = Transaction(
                account_number=account_number,
                txn_type=txn_type,
                amount=amount,
                balance_after_txn=balance_after_txn,
                txn_time=self.clock()
            )
            filename = self._filename(account_number)
            self._pending.setdefault(filename, []).append(self.format_line(txn))
            self._drain(filename)
            return txn

    def _drain(self, filename: str):
        lines = self._pending.get(filename)
        if not lines:
            return
        self.storage.append_lines(filename, lines)
        del self._pending[filename]

    def flush(self) -> bool:
        """Write any held-back lines; returns True if something was written"""
        with self._lock:
            if not self._pending:
                return False
            for filename in list(self._pending):
                self._drain(filename)
            return True

    def _read(self, account_number: int) -> Iterator[Transaction]:
        filename = self._filename(account_number)
        with self._lock:
            lines = self.storage.read_lines(filename) + list(self._pending.get(filename, []))
        for line in lines:
            txn = self.parse_line(account_number, line)
            if txn is not None:
                yield txn

    def has_history(self, account_number: int) -> bool:
        filename = self._filename(account_number)
        return self.storage.exists(filename) or filename in self._pending

    def history(self, account_number: int) -> TransactionQuery:
        """Every transaction of an account, oldest first"""
        return TransactionQuery(self, account_number)

    def query(self, account_number: int, predicate: TransactionFilter) -> TransactionQuery:
        """Transactions matching exactly one filter form"""
        if not isinstance(predicate, (DateRangeFilter, TypeFilter, AmountFilter)):
            raise ValidationException("Filter must be a date range, a type or an amount")
        return TransactionQuery(self, account_number, predicate)

    def monthly_statement(self, account_number: int, year: int, month: int) -> List[Transaction]:
        """Transactions of one calendar month"""
        BankingValidator.validate_month(year, month)
        start, end = DateUtils.month_bounds(year, month)
        return list(self.query(account_number, DateRangeFilter(start, end)))

    def write_statement(self, account: Account, year: int, month: int,
                        transactions: Iterable[Transaction]) -> str:
        """Save a monthly statement file and return its relative name"""
        filename = f"{STATEMENTS_DIR}/statement_{account.account_number}_{year}_{month}.txt"
        lines = [
            "==== MONTHLY STATEMENT ====",
            f"Account#: {account.account_number}",
            f"Username: {account.owner_username}",
            f"Period: {month}/{year}",
            "==========================="
        ]
        body = [self.format_line(t) for t in transactions]
        lines.extend(body or ["No transactions in this period."])
        self.storage.write_lines(filename, lines)
        logger.info(f"Statement written to {filename}")
        return filename

    def write_receipt(self, account: Account, txn: Transaction) -> str:
        """Save a receipt for a deposit or withdrawal and return its relative name"""
        stamp = txn.txn_time.strftime("%Y%m%d_%H%M%S")
        filename = f"{RECEIPTS_DIR}/receipt_{account.account_number}_{stamp}.txt"
        self.storage.write_lines(filename, [
            "==== MiniBank Receipt ====",
            f"Account Number: {account.account_number}",
            f"Username: {account.owner_username}",
            f"Operation: {txn.txn_type.value}",
            f"Amount: {NumberUtils.round_currency(txn.amount):.2f}",
            f"Balance: {NumberUtils.round_currency(txn.balance_after_txn):.2f}",
            f"Date: {DateUtils.format_timestamp(txn.txn_time)}"
        ])
        return filename

    def clear_pending(self):
        with self._lock:
            self._pending = {}
