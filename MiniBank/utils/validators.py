"""
Input Validation Utilities
Provides validation functions for banking system inputs
"""

import re
from decimal import Decimal
from datetime import date, datetime
from utils.exceptions import ValidationException

# Field separators used by the data files
FIELD_DELIMITERS = (',', '|', '\n', '\r')

class BankingValidator:
    """Validation utilities for banking operations"""

    @staticmethod
    def validate_amount(amount: Decimal, min_amount: Decimal = None, max_amount: Decimal = None) -> bool:
        """Validate monetary amount"""
        if not isinstance(amount, Decimal):
            raise ValidationException("Amount must be a Decimal", "INVALID_AMOUNT")

        if not amount.is_finite() or amount <= 0:
            raise ValidationException("Amount must be positive", "INVALID_AMOUNT")

        if min_amount and amount < min_amount:
            raise ValidationException(f"Amount must be at least {min_amount}", "INVALID_AMOUNT")

        if max_amount and amount > max_amount:
            raise ValidationException(f"Amount cannot exceed {max_amount}", "INVALID_AMOUNT")

        # Check decimal places (max 2 for currency)
        if amount.as_tuple().exponent < -2:
            raise ValidationException("Amount cannot have more than 2 decimal places", "INVALID_AMOUNT")

        return True

    @staticmethod
    def validate_required(value: str, field_name: str = "Value") -> bool:
        """Validate a required free-text field"""
        if value is None or not str(value).strip():
            raise ValidationException(f"{field_name} is required")

        BankingValidator.validate_no_delimiters(value, field_name)
        return True

    @staticmethod
    def validate_no_delimiters(value: str, field_name: str = "Value") -> bool:
        """Reject characters that would corrupt a comma or pipe delimited record"""
        if value and any(ch in value for ch in FIELD_DELIMITERS):
            raise ValidationException(f"{field_name} cannot contain commas, pipes or line breaks")
        return True

    @staticmethod
    def validate_digits(value: str, field_name: str = "Value") -> bool:
        """Validate a digits-only identifier such as a national ID or phone"""
        if not value:
            raise ValidationException(f"{field_name} is required")

        if not re.match(r'^\d+$', value):
            raise ValidationException(f"{field_name} must contain digits only")

        return True

    @staticmethod
    def validate_username(username: str) -> bool:
        """Validate username"""
        BankingValidator.validate_required(username, "Username")

        if len(username) > 30:
            raise ValidationException("Username cannot exceed 30 characters")

        if username != username.strip():
            raise ValidationException("Username cannot start or end with spaces")

        return True

    @staticmethod
    def validate_password(password: str) -> bool:
        """Validate password presence"""
        if not password or not password.strip():
            raise ValidationException("Password is required")

        if len(password) > 128:
            raise ValidationException("Password cannot exceed 128 characters")

        return True

    @staticmethod
    def validate_date(value: str, field_name: str = "Date") -> date:
        """Validate a YYYY-MM-DD date string"""
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except (ValueError, AttributeError):
            raise ValidationException(f"{field_name} must be in YYYY-MM-DD format")

    @staticmethod
    def validate_time(value: str, field_name: str = "Time") -> bool:
        """Validate an HH:MM time string"""
        if not value or not re.match(r'^([01]?\d|2[0-3]):[0-5]\d$', value.strip()):
            raise ValidationException(f"{field_name} must be in HH:MM format")

        return True

    @staticmethod
    def validate_month(year: int, month: int) -> bool:
        """Validate a statement period"""
        if not isinstance(year, int) or year < 1900 or year > 9999:
            raise ValidationException("Invalid year")

        if not isinstance(month, int) or month < 1 or month > 12:
            raise ValidationException("Invalid month")

        return True
