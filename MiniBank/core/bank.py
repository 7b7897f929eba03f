"""
Bank
Builds every store and service over one data directory and owns their lifecycle
"""

from datetime import datetime
from typing import Callable, List
import logging

from db.database import FileManager, StorageConfig
from core.repositories.base_repository import BaseRepository
from core.repositories.user_repository import UserRepository
from core.repositories.transaction_repository import TransactionRepository
from core.repositories.account_repository import AccountRepository
from core.repositories.loan_repository import LoanRepository
from core.repositories.request_repository import (
    AccountRequestRepository, AdminRequestRepository,
    AppointmentRepository, ApprovedAppointmentRepository
)
from core.repositories.review_repository import ReviewRepository, ServiceFeedbackRepository
from core.repositories.exchange_rate_repository import ExchangeRateRepository
from core.services.loan_service import LoanService
from core.services.approval_service import ApprovalService
from core.services.authentication_service import AuthenticationService
from core.services.account_service import AccountService
from core.services.transaction_service import TransactionService
from core.services.review_service import ReviewService
from core.services.report_service import ReportService
from utils.exceptions import PersistenceException
from utils.helpers import LoggingUtils

logger = logging.getLogger(__name__)

class Bank:
    """Composition root: stores are created here and handed to the services"""

    def __init__(self, config: StorageConfig = None, clock: Callable[[], datetime] = datetime.now):
        self.config = config or StorageConfig()
        self.storage = FileManager(self.config)

        self.transactions = TransactionRepository(self.storage, clock)
        self.users = UserRepository(self.storage)
        self.accounts = AccountRepository(self.storage, self.transactions)
        self.loans = LoanRepository(self.storage)
        self.account_requests = AccountRequestRepository(self.storage)
        self.admin_requests = AdminRequestRepository(self.storage)
        self.appointments = AppointmentRepository(self.storage)
        self.approved_appointments = ApprovedAppointmentRepository(self.storage)
        self.reviews = ReviewRepository(self.storage)
        self.feedback = ServiceFeedbackRepository(self.storage)
        self.rates = ExchangeRateRepository(self.storage)

        self.loan_svc = LoanService(self.loans, self.accounts)
        self.approval_svc = ApprovalService(
            self.users, self.accounts, self.account_requests, self.admin_requests,
            self.appointments, self.approved_appointments, self.loan_svc
        )
        self.auth_svc = AuthenticationService(
            self.users, self.accounts, self.approval_svc,
            timeout_minutes=self.config.session_timeout_minutes, clock=clock
        )
        self.account_svc = AccountService(
            self.users, self.accounts, self.account_requests, self.loans, self.rates
        )
        self.transaction_svc = TransactionService(self.accounts, self.transactions)
        self.review_svc = ReviewService(self.reviews, self.feedback, clock)
        self.report_svc = ReportService(
            self.users, self.accounts, self.loans, self.account_requests, self.admin_requests,
            self.appointments, self.approved_appointments, self.reviews, self.feedback, self.rates
        )

    @classmethod
    def open(cls, data_dir: str = None, clock: Callable[[], datetime] = datetime.now) -> 'Bank':
        """Create a bank over a data directory and load every store"""
        bank = cls(StorageConfig(data_dir), clock)
        bank.load()
        return bank

    @property
    def stores(self) -> List[BaseRepository]:
        return [
            self.users, self.accounts, self.loans, self.account_requests,
            self.admin_requests, self.appointments, self.approved_appointments,
            self.reviews, self.feedback, self.rates
        ]

    @property
    def is_dirty(self) -> bool:
        return self.transactions.is_dirty or any(store.is_dirty for store in self.stores)

    def load(self):
        for store in self.stores:
            store.load()
        logger.info(f"Bank loaded from {self.config.data_dir}: {self.accounts.count()} account(s)")

    def flush(self) -> bool:
        """Write out everything an earlier failed save left in memory.

        Every store is attempted; the first failure is raised afterwards.
        """
        failure = None
        wrote = False
        for store in [self.transactions] + self.stores:
            try:
                wrote = store.flush() or wrote
            except PersistenceException as e:
                failure = failure or e
        if failure:
            raise failure
        return wrote

    def shutdown(self):
        """Flush pending writes and end every open session"""
        for token in list(self.auth_svc.active_sessions):
            self.auth_svc.logout(token)
        self.flush()
        logger.info("Bank shut down")

    def backup(self, label: str = None) -> str:
        """Copy all data files into a timestamped backup folder"""
        self.flush()
        path = self.storage.backup(label)
        LoggingUtils.log_business_event("backup_created", "backup", path)
        return path

    def delete_all_data(self):
        """Erase every data file and empty every store; backups are kept"""
        self.storage.delete_all()
        self.transactions.clear_pending()
        for store in self.stores:
            store.clear()
        self.auth_svc.active_sessions.clear()
        LoggingUtils.log_security_event("all_data_deleted")
