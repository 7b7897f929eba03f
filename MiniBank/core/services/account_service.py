"""
Account Service
Business logic for customer profiles and admin account management
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from core.repositories.account_repository import AccountRepository
from core.repositories.exchange_rate_repository import ExchangeRateRepository
from core.repositories.loan_repository import LoanRepository
from core.repositories.request_repository import AccountRequestRepository
from core.repositories.user_repository import UserRepository
from core.models.entities import Account, Credential
from utils.exceptions import (
    AccountNotFoundException, AuthenticationException, ValidationException
)
from utils.validators import BankingValidator
from utils.helpers import NumberUtils, SecurityUtils, StringUtils, LoggingUtils

class AccountService:
    """Service class for account management operations"""

    def __init__(self, user_repo: UserRepository, account_repo: AccountRepository,
                 account_requests: AccountRequestRepository, loan_repo: LoanRepository,
                 rate_repo: ExchangeRateRepository):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.account_requests = account_requests
        self.loan_repo = loan_repo
        self.rate_repo = rate_repo

    # -- customer ------------------------------------------------------------

    def get_account_for_user(self, username: str) -> Account:
        account = self.account_repo.find_by_owner(username)
        if not account:
            raise AccountNotFoundException(f"No approved account for '{username}'")
        return account

    def has_account(self, username: str) -> bool:
        return self.account_repo.find_by_owner(username) is not None

    def has_pending_request(self, username: str) -> bool:
        return self.account_requests.username_pending(username)

    def get_account_details(self, username: str) -> Dict[str, Any]:
        """Account summary for display, with masked identifiers"""
        account = self.get_account_for_user(username)
        return {
            'account_number': account.account_number,
            'username': account.owner_username,
            'balance': account.balance,
            'national_id': StringUtils.mask_national_id(account.national_id),
            'phone': StringUtils.mask_phone_number(account.phone),
            'address': account.address
        }

    def balance_in_currencies(self, username: str) -> Dict[str, Decimal]:
        """Display-only conversion of the customer's balance"""
        return self.rate_repo.convert(self.get_account_for_user(username).balance)

    def update_info(self, username: str, current_password: str, new_username: str = None,
                    new_password: str = None, phone: str = None, address: str = None,
                    national_id: str = None) -> Dict[str, Any]:
        """Update personal details after re-checking the current password.

        All new values are validated before anything is written.
        """
        credential = self.user_repo.find_by_username(username)
        if not credential or not SecurityUtils.verify_hash(current_password or "", credential.password_hash):
            raise AuthenticationException("Incorrect current password", "WRONG_OLD_PASSWORD")

        account = self.account_repo.find_by_owner(username)
        changed = []

        if new_username is not None:
            new_username = new_username.strip()
            BankingValidator.validate_username(new_username)
            if self.user_repo.username_exists(new_username, exclude=username):
                raise ValidationException("Username already taken", "DUPLICATE_USERNAME")
        if new_password is not None:
            BankingValidator.validate_password(new_password)
        if phone is not None:
            phone = phone.strip()
            BankingValidator.validate_digits(phone, "Phone")
        if address is not None:
            BankingValidator.validate_required(address, "Address")
            address = StringUtils.clean_string(address)
        if national_id is not None:
            national_id = national_id.strip()
            BankingValidator.validate_digits(national_id, "National ID")
            if not account or national_id != account.national_id:
                if (self.account_repo.national_id_exists(national_id)
                        or self.account_requests.national_id_pending(national_id)):
                    raise ValidationException("National ID already exists or is pending",
                                              "DUPLICATE_NATIONAL_ID")

        if (phone is not None or address is not None or national_id is not None) and not account:
            raise AccountNotFoundException(f"No approved account for '{username}'")

        if account and (phone is not None or address is not None or national_id is not None):
            self.account_repo.update_contact(account.account_number, phone=phone,
                                             address=address, national_id=national_id)
            changed.extend(name for name, value in
                           (('phone', phone), ('address', address), ('national_id', national_id))
                           if value is not None)

        if new_password is not None:
            self.user_repo.change_password(username, current_password, new_password)
            changed.append('password')

        if new_username is not None and new_username != username:
            self.user_repo.rename(username, new_username)
            self.account_repo.rename_owner(username, new_username)
            self.loan_repo.rename_owner(username, new_username)
            self.account_requests.rename_owner(username, new_username)
            changed.append('username')
            username = new_username

        LoggingUtils.log_business_event("profile_updated", "user", username, username=username,
                                        details={'fields': changed})
        return {'success': True, 'username': username, 'changed': changed}

    # -- admin ---------------------------------------------------------------

    def list_accounts(self) -> List[Account]:
        return self.account_repo.get_all()

    def search_accounts(self, term: str) -> List[Account]:
        return self.account_repo.search(term)

    def delete_account(self, account_number: int) -> Account:
        return self.account_repo.delete_account(account_number)

    def export_accounts(self) -> str:
        path = self.account_repo.export_csv()
        LoggingUtils.log_business_event("accounts_exported", "account", None,
                                        details={'path': path, 'count': self.account_repo.count()})
        return path

    def top_richest(self, limit: int = 3) -> List[Account]:
        return self.account_repo.top_balances(limit)

    def total_balance(self) -> Decimal:
        return self.account_repo.total_balance()

    def average_balance(self) -> Optional[Decimal]:
        return self.account_repo.average_balance()

    def accounts_above(self, threshold: Union[Decimal, float, str]) -> List[Account]:
        return self.account_repo.accounts_above(NumberUtils.to_decimal(threshold))

    def total_customers(self) -> int:
        """Customers holding an approved account"""
        return self.account_repo.count()

    def locked_users(self) -> List[Credential]:
        return self.user_repo.get_locked_users()

    def unlock_user(self, username: str) -> Credential:
        return self.user_repo.unlock(username)
