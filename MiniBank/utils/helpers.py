"""
Helper Utilities
Common utility functions for banking operations
"""

import uuid
import hashlib
import hmac
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from datetime import datetime, date, timedelta
from typing import Optional, Dict, Any, Tuple, Union
import logging

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from utils.exceptions import ValidationException

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

class NumberUtils:
    """Utility functions for number operations"""

    @staticmethod
    def round_currency(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places for currency"""
        return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

    @staticmethod
    def to_decimal(value: Union[int, float, str, Decimal]) -> Decimal:
        """Convert a primitive (as handed over by the UI) to Decimal"""
        if isinstance(value, Decimal):
            return value
        try:
            return Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationException(f"'{value}' is not a valid amount", "INVALID_AMOUNT")

    @staticmethod
    def format_amount(amount: Decimal) -> str:
        """Shortest plain rendering of an amount, as stored in data files (1000, 1000.5)"""
        text = format(amount.normalize(), 'f')
        return text if text != '-0' else '0'

class DateUtils:
    """Utility functions for date operations"""

    @staticmethod
    def format_timestamp(moment: datetime) -> str:
        return moment.strftime(TIMESTAMP_FORMAT)

    @staticmethod
    def parse_timestamp(text: str) -> Optional[datetime]:
        """Parse a logged timestamp; older logs use locale formats, so be lenient"""
        try:
            return date_parser.parse(text.strip())
        except (ValueError, OverflowError):
            return None

    @staticmethod
    def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
        """First and last instant of a calendar month"""
        start = datetime(year, month, 1)
        end = start + relativedelta(months=1) - timedelta(microseconds=1)
        return start, end

    @staticmethod
    def day_bounds(start_day: date, end_day: date) -> Tuple[datetime, datetime]:
        """Inclusive datetime range covering whole days"""
        start = datetime(start_day.year, start_day.month, start_day.day)
        end = datetime(end_day.year, end_day.month, end_day.day) + timedelta(days=1) - timedelta(microseconds=1)
        return start, end

class StringUtils:
    """Utility functions for string operations"""

    @staticmethod
    def mask_phone_number(phone: str) -> str:
        """Mask phone number for display"""
        if len(phone) <= 4:
            return phone

        return phone[:2] + "*" * (len(phone) - 4) + phone[-2:]

    @staticmethod
    def mask_national_id(national_id: str) -> str:
        """Mask national ID for display (show only last 3 digits)"""
        if len(national_id) <= 3:
            return national_id
        return "*" * (len(national_id) - 3) + national_id[-3:]

    @staticmethod
    def clean_string(text: str) -> str:
        """Collapse runs of whitespace into single spaces"""
        return " ".join((text or "").split())

class SecurityUtils:
    """Security utility functions"""

    @staticmethod
    def generate_hash(data: str) -> str:
        """Unsalted SHA-256 hex digest, the format users.txt stores"""
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    @staticmethod
    def verify_hash(data: str, expected_hash: str) -> bool:
        """Compare a plaintext against a stored SHA-256 hex digest"""
        return hmac.compare_digest(SecurityUtils.generate_hash(data), expected_hash.lower())

    @staticmethod
    def generate_session_token() -> str:
        """Generate secure session token"""
        return str(uuid.uuid4())

class LoggingUtils:
    """Structured log events; the payload travels in ``extra`` for log shippers"""

    @staticmethod
    def _payload(kind: str, username: Optional[str], details: Optional[Dict[str, Any]],
                 **fields) -> Dict[str, Any]:
        fields.update(event_kind=kind, username=username, details=details or {},
                      logged_at=datetime.now().isoformat())
        return fields

    @staticmethod
    def log_transaction(transaction_type: str, account_number: int, amount: Decimal,
                        username: str = None, details: Dict[str, Any] = None):
        """Money movement on one account"""
        logger.info(
            f"Transaction: {transaction_type} {amount} on account {account_number}",
            extra=LoggingUtils._payload('transaction', username, details,
                                        transaction_type=transaction_type,
                                        account_number=account_number, amount=str(amount))
        )

    @staticmethod
    def log_security_event(event_type: str, username: str = None,
                           details: Dict[str, Any] = None):
        """Logins, lockouts, credential changes"""
        logger.warning(
            f"Security Event: {event_type} ({username or '-'})",
            extra=LoggingUtils._payload('security', username, details, event_type=event_type)
        )

    @staticmethod
    def log_business_event(event_type: str, entity_type: str, entity_id: Any,
                           username: str = None, details: Dict[str, Any] = None):
        logger.info(
            f"Business Event: {event_type} {entity_type}={entity_id}",
            extra=LoggingUtils._payload('business', username, details, event_type=event_type,
                                        entity_type=entity_type, entity_id=entity_id)
        )
