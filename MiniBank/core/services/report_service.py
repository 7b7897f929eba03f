"""
Report Service
System-wide statistics and the currency report for administrators
"""

from decimal import Decimal
from typing import Any, Dict, List, Union

from core.models.entities import ExchangeRates, LoanStatus, UserRole
from core.repositories.account_repository import AccountRepository
from core.repositories.exchange_rate_repository import ExchangeRateRepository
from core.repositories.loan_repository import LoanRepository
from core.repositories.request_repository import (
    AccountRequestRepository, AdminRequestRepository,
    AppointmentRepository, ApprovedAppointmentRepository
)
from core.repositories.review_repository import ReviewRepository, ServiceFeedbackRepository
from core.repositories.user_repository import UserRepository
from utils.helpers import NumberUtils, LoggingUtils

class ReportService:
    def __init__(self, user_repo: UserRepository, account_repo: AccountRepository,
                 loan_repo: LoanRepository, account_requests: AccountRequestRepository,
                 admin_requests: AdminRequestRepository, appointments: AppointmentRepository,
                 approved_appointments: ApprovedAppointmentRepository,
                 review_repo: ReviewRepository, feedback_repo: ServiceFeedbackRepository,
                 rate_repo: ExchangeRateRepository):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.loan_repo = loan_repo
        self.account_requests = account_requests
        self.admin_requests = admin_requests
        self.appointments = appointments
        self.approved_appointments = approved_appointments
        self.review_repo = review_repo
        self.feedback_repo = feedback_repo
        self.rate_repo = rate_repo

    def system_stats(self) -> Dict[str, Any]:
        loans = self.loan_repo.get_all_loans()
        return {
            'total_users': len(self.user_repo.get_all()),
            'admins': self.user_repo.count_by_role(UserRole.ADMIN),
            'customers': self.user_repo.count_by_role(UserRole.CUSTOMER),
            'locked_users': len(self.user_repo.get_locked_users()),
            'accounts': self.account_repo.count(),
            'total_balance': self.account_repo.total_balance(),
            'average_balance': self.account_repo.average_balance(),
            'pending_account_requests': self.account_requests.count(),
            'pending_admin_requests': self.admin_requests.count(),
            'pending_loans': sum(1 for l in loans if l.status == LoanStatus.PENDING),
            'approved_loans': sum(1 for l in loans if l.status == LoanStatus.APPROVED),
            'rejected_loans': sum(1 for l in loans if l.status == LoanStatus.REJECTED),
            'loan_interest': self.loan_repo.total_approved_interest(),
            'pending_appointments': self.appointments.count(),
            'approved_appointments': self.approved_appointments.count(),
            'reviews': self.review_repo.count(),
            'service_feedback': self.feedback_repo.count()
        }

    def exchange_rates(self) -> ExchangeRates:
        return self.rate_repo.rates

    def update_exchange_rates(self, usd: Union[Decimal, float, str], eur: Union[Decimal, float, str],
                              sar: Union[Decimal, float, str]) -> ExchangeRates:
        rates = self.rate_repo.update(
            NumberUtils.to_decimal(usd), NumberUtils.to_decimal(eur), NumberUtils.to_decimal(sar)
        )
        LoggingUtils.log_business_event("exchange_rates_updated", "exchange_rates", None,
                                        details={'usd': str(rates.usd), 'eur': str(rates.eur),
                                                 'sar': str(rates.sar)})
        return rates

    def currency_report(self) -> List[Dict[str, Any]]:
        """Every account's balance in each supported currency"""
        report = []
        for account in self.account_repo.get_all():
            row = {'account_number': account.account_number, 'username': account.owner_username}
            row.update(self.rate_repo.convert(account.balance))
            report.append(row)
        return report
