"""
Custom Exceptions for MiniBank Ledger System
"""

class BankingSystemException(Exception):
    """Base exception for all banking system errors"""
    def __init__(self, message: str, error_code: str = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

class ValidationException(BankingSystemException):
    """Raised when input validation fails"""
    def __init__(self, message: str, error_code: str = "INVALID_INPUT"):
        super().__init__(message, error_code)

class InsufficientFundsException(BankingSystemException):
    """Raised when a balance rule blocks the operation"""
    def __init__(self, message: str, error_code: str = "BELOW_MINIMUM_BALANCE"):
        super().__init__(message, error_code)

class ActiveLoanExistsException(BankingSystemException):
    """Raised when a user already has a pending or approved loan"""
    def __init__(self, message: str, error_code: str = "ACTIVE_LOAN_EXISTS"):
        super().__init__(message, error_code)

class AuthenticationException(BankingSystemException):
    """Raised when authentication fails"""
    pass

class AccountLockedException(AuthenticationException):
    """Raised when a locked credential attempts to log in"""
    def __init__(self, message: str, error_code: str = "ACCOUNT_LOCKED"):
        super().__init__(message, error_code)

class AccountNotFoundException(BankingSystemException):
    """Raised when referenced account does not exist"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ACCOUNT"):
        super().__init__(message, error_code)

class UserNotFoundException(BankingSystemException):
    """Raised when referenced username does not exist"""
    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message, error_code)

class LoanNotFoundException(BankingSystemException):
    """Raised when referenced loan does not exist"""
    def __init__(self, message: str, error_code: str = "NOT_FOUND"):
        super().__init__(message, error_code)

class RequestNotFoundException(BankingSystemException):
    """Raised when a request queue has nothing to decide"""
    def __init__(self, message: str, error_code: str = "QUEUE_EMPTY"):
        super().__init__(message, error_code)

class PersistenceException(BankingSystemException):
    """Raised when a data file cannot be written; in-memory state is kept"""
    def __init__(self, message: str, error_code: str = "PERSISTENCE_FAILED"):
        super().__init__(message, error_code)

class SessionExpiredException(AuthenticationException):
    """Raised when an idle session is used after its timeout"""
    def __init__(self, message: str, error_code: str = "SESSION_EXPIRED"):
        super().__init__(message, error_code)
