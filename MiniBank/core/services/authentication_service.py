"""
Authentication Service
Business logic for login, signup and session handling
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Optional, Union

from core.repositories.user_repository import UserRepository
from core.repositories.account_repository import AccountRepository
from core.models.entities import AccountRequest, AdminAccountRequest, Credential, UserRole
from core.services.approval_service import ApprovalService
from utils.exceptions import AuthenticationException, ValidationException
from utils.helpers import LoggingUtils
from utils.session import Session, DEFAULT_TIMEOUT_MINUTES

class AuthenticationService:
    """Service class for authentication and security operations"""

    def __init__(self, user_repo: UserRepository, account_repo: AccountRepository,
                 approval_svc: ApprovalService, timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES,
                 clock: Callable[[], datetime] = datetime.now):
        self.user_repo = user_repo
        self.account_repo = account_repo
        self.approval_svc = approval_svc
        self.timeout_minutes = timeout_minutes
        self.clock = clock
        self.active_sessions: Dict[str, Session] = {}

    def login(self, username: str, password: str, role: Union[UserRole, str]) -> Session:
        """Authenticate and open a session"""
        role = role if isinstance(role, UserRole) else UserRole(role)
        if not username or not password:
            raise ValidationException("Username and password are required")

        try:
            user = self.user_repo.authenticate(username, password, role)
        except AuthenticationException as e:
            LoggingUtils.log_security_event(
                "login_failed", username=username,
                details={'role': role.value, 'error_code': e.error_code}
            )
            raise

        session = Session(user.username, user.role, self.timeout_minutes, self.clock)
        self.active_sessions[session.token] = session
        LoggingUtils.log_security_event("login_success", username=user.username,
                                        details={'role': user.role.value})
        return session

    def login_by_national_id(self, national_id: str, password: str) -> Session:
        """Customer login using the national ID on an approved account"""
        account = self.account_repo.find_by_national_id((national_id or "").strip())
        if not account:
            raise AuthenticationException("No approved account with this National ID", "NO_SUCH_USER")

        credential = self.user_repo.find_by_username(account.owner_username)
        if not credential or credential.role != UserRole.CUSTOMER:
            raise AuthenticationException("No login linked to this National ID", "NO_SUCH_USER")

        return self.login(credential.username, password, UserRole.CUSTOMER)

    def logout(self, session_token: str) -> bool:
        """Logout user and invalidate session"""
        session = self.active_sessions.pop(session_token, None)
        if not session:
            return False
        session.cancel("logout")
        return True

    def validate_session(self, session_token: str) -> Optional[Session]:
        """Return the live session for a token, dropping it once it has expired"""
        session = self.active_sessions.get(session_token)
        if not session:
            return None
        if session.is_expired():
            session.cancel("idle_timeout")
            del self.active_sessions[session_token]
            return None
        return session

    def signup_customer(self, username: str, password: str, full_name: str, national_id: str,
                        initial_deposit: Union[Decimal, float, str], phone: str,
                        address: str) -> AccountRequest:
        """Create a customer login and queue its account-opening request.

        Everything is validated before the credential is written, so a
        rejected signup leaves nothing behind.
        """
        if self.user_repo.username_exists(username):
            raise ValidationException("Username already exists", "DUPLICATE_USERNAME")
        self.approval_svc.validate_account_request(username, full_name, national_id,
                                                   initial_deposit, phone, address)

        self.user_repo.register(username, password, UserRole.CUSTOMER)
        return self.approval_svc.submit_account_request(username, full_name, national_id,
                                                        initial_deposit, phone, address)

    def signup_admin(self, username: str, password: str, full_name: str, national_id: str,
                     phone: str, address: str) -> AdminAccountRequest:
        """Queue an admin login; the credential exists only once approved"""
        return self.approval_svc.submit_admin_request(username, full_name, national_id,
                                                      phone, address, password)

    def change_password(self, username: str, old_password: str, new_password: str) -> Credential:
        return self.user_repo.change_password(username, old_password, new_password)

    def unlock_user(self, username: str) -> Credential:
        return self.user_repo.unlock(username)
