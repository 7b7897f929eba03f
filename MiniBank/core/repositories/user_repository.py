"""
User Repository
Identity store: login credentials, lockout counters and the bootstrap admin
"""

from typing import Dict, List, Optional
import logging

from core.repositories.base_repository import BaseRepository
from core.models.entities import Credential, UserRole
from db.database import FileManager
from utils.exceptions import (
    AuthenticationException, AccountLockedException,
    UserNotFoundException, ValidationException
)
from utils.helpers import SecurityUtils, LoggingUtils
from utils.validators import BankingValidator

logger = logging.getLogger(__name__)

USERS_FILE = 'users.txt'
LOCKOUTS_FILE = 'user_lockouts.txt'

MAX_FAILED_ATTEMPTS = 3

# Break-glass administrator. It is recreated whenever missing and a wrong
# password for it never counts towards lockout, so it can always get in to
# unlock everyone else. This weakens lockout for that one identity.
ADMIN_USERNAME = 'q'
ADMIN_DEFAULT_PASSWORD = 'q'

class UserRepository(BaseRepository):
    """Repository for login credentials (users.txt)"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, USERS_FILE)
        self._users: Dict[str, Credential] = {}

    # -- persistence ---------------------------------------------------------

    def _serialize(self) -> List[str]:
        return [f"{u.username},{u.password_hash},{u.role.value}" for u in self._users.values()]

    def _deserialize(self, lines: List[str]) -> None:
        self._users = {}
        for line in lines:
            parts = self._split(line, ',', 3)
            if not parts:
                continue
            try:
                role = UserRole(parts[2].strip())
            except ValueError:
                logger.warning(f"Skipping user with unknown role: {line!r}")
                continue
            self._users[parts[0]] = Credential(username=parts[0], password_hash=parts[1], role=role)

    def load(self):
        """Load credentials, then lockout state from its side file"""
        with self._lock:
            super().load()
            for line in self.storage.read_lines(LOCKOUTS_FILE):
                parts = self._split(line, '|', 3)
                if not parts or parts[0] not in self._users:
                    continue
                user = self._users[parts[0]]
                try:
                    user.failed_attempts = int(parts[1])
                except ValueError:
                    user.failed_attempts = 0
                user.locked = parts[2].strip() == 'locked'
            self.ensure_admin_account()

    def save(self):
        """Rewrite users.txt and the lockout side file"""
        with self._lock:
            super().save()
            self.storage.write_lines(LOCKOUTS_FILE, [
                f"{u.username}|{u.failed_attempts}|{'locked' if u.locked else 'open'}"
                for u in self._users.values()
                if u.locked or u.failed_attempts
            ])

    # -- bootstrap -----------------------------------------------------------

    def ensure_admin_account(self) -> Credential:
        """Make sure the bootstrap admin exists"""
        with self._lock:
            existing = self._users.get(ADMIN_USERNAME)
            if existing:
                if existing.role != UserRole.ADMIN:
                    logger.warning(f"Username '{ADMIN_USERNAME}' is held by a non-admin credential")
                return existing

            admin = Credential(
                username=ADMIN_USERNAME,
                password_hash=SecurityUtils.generate_hash(ADMIN_DEFAULT_PASSWORD),
                role=UserRole.ADMIN
            )
            self._users[ADMIN_USERNAME] = admin
            self.save()
            LoggingUtils.log_security_event("bootstrap_admin_created", username=ADMIN_USERNAME)
            return admin

    @staticmethod
    def is_lockout_exempt(user: Credential) -> bool:
        return user.username == ADMIN_USERNAME and user.role == UserRole.ADMIN

    # -- queries -------------------------------------------------------------

    def find_by_username(self, username: str) -> Optional[Credential]:
        """Find credential by username"""
        if not username:
            return None
        return self._users.get(username)

    def username_exists(self, username: str, exclude: str = None) -> bool:
        """True if another credential holds the name, ignoring case.

        Ledger ownership is matched case-insensitively, so names that differ
        only in case must never belong to two logins.
        """
        if not username:
            return False
        wanted = username.lower()
        return any(
            name.lower() == wanted for name in self._users if name != exclude
        )

    def get_all(self) -> List[Credential]:
        return list(self._users.values())

    def get_locked_users(self) -> List[Credential]:
        return [u for u in self._users.values() if u.locked]

    def count_by_role(self, role: UserRole) -> int:
        return sum(1 for u in self._users.values() if u.role == role)

    # -- mutations -----------------------------------------------------------

    def register(self, username: str, password: str, role: UserRole) -> Credential:
        """Create a credential, hashing the password before it is stored"""
        BankingValidator.validate_password(password)
        return self.add_credential(username, SecurityUtils.generate_hash(password), role)

    def add_credential(self, username: str, password_hash: str, role: UserRole) -> Credential:
        """Create a credential from an already hashed password"""
        BankingValidator.validate_username(username)
        with self._lock:
            if self.username_exists(username):
                raise ValidationException("Username already exists", "DUPLICATE_USERNAME")

            user = Credential(username=username, password_hash=password_hash, role=role)
            self._users[username] = user
            self.save()

        LoggingUtils.log_security_event("user_created", username=username, details={'role': role.value})
        return user

    def authenticate(self, username: str, password: str, role: UserRole) -> Credential:
        """Check a password, applying the failed-attempt lockout"""
        with self._lock:
            self.ensure_admin_account()

            user = self._users.get(username)
            if not user or user.role != role:
                raise AuthenticationException("No such user with this role", "NO_SUCH_USER")

            if user.locked:
                raise AccountLockedException("Account is locked. Please contact admin to unlock.")

            if SecurityUtils.verify_hash(password or "", user.password_hash):
                if user.failed_attempts:
                    user.failed_attempts = 0
                    self.save()
                return user

            if self.is_lockout_exempt(user):
                raise AuthenticationException("Invalid password", "BAD_PASSWORD")

            user.failed_attempts += 1
            if user.failed_attempts >= MAX_FAILED_ATTEMPTS:
                user.locked = True
                self.save()
                LoggingUtils.log_security_event(
                    "account_locked", username=username,
                    details={'failed_attempts': user.failed_attempts}
                )
                raise AuthenticationException(
                    f"Account locked after {MAX_FAILED_ATTEMPTS} failed attempts", "BAD_PASSWORD"
                )

            self.save()
            remaining = MAX_FAILED_ATTEMPTS - user.failed_attempts
            raise AuthenticationException(f"Invalid password. Attempts left: {remaining}", "BAD_PASSWORD")

    def unlock(self, username: str) -> Credential:
        """Clear the lock flag and the failed-attempt counter"""
        with self._lock:
            user = self._users.get(username)
            if not user:
                raise UserNotFoundException(f"User '{username}' not found")

            user.locked = False
            user.failed_attempts = 0
            self.save()

        LoggingUtils.log_security_event("account_unlocked", username=username)
        return user

    def change_password(self, username: str, old_password: str, new_password: str) -> Credential:
        """Change password after verifying the current one"""
        BankingValidator.validate_password(new_password)
        with self._lock:
            user = self._users.get(username)
            if not user:
                raise UserNotFoundException(f"User '{username}' not found")

            if not SecurityUtils.verify_hash(old_password or "", user.password_hash):
                raise AuthenticationException("Incorrect current password", "WRONG_OLD_PASSWORD")

            user.password_hash = SecurityUtils.generate_hash(new_password)
            self.save()

        LoggingUtils.log_security_event("password_changed", username=username)
        return user

    def rename(self, old_username: str, new_username: str) -> Credential:
        """Change a username, keeping it unique"""
        BankingValidator.validate_username(new_username)
        with self._lock:
            user = self._users.get(old_username)
            if not user:
                raise UserNotFoundException(f"User '{old_username}' not found")
            if self.is_lockout_exempt(user):
                raise ValidationException("The bootstrap admin cannot be renamed")
            if self.username_exists(new_username, exclude=old_username):
                raise ValidationException("Username already taken", "DUPLICATE_USERNAME")

            # Rebuild to keep insertion order stable on disk
            self._users = {
                (new_username if name == old_username else name): cred
                for name, cred in self._users.items()
            }
            user.username = new_username
            self.save()

        LoggingUtils.log_security_event("username_changed", username=new_username,
                                        details={'old_username': old_username})
        return user

    def clear(self):
        """Drop every credential except a fresh bootstrap admin"""
        with self._lock:
            self._users = {}
            self.ensure_admin_account()
