"""
Session utilities
Idle-timeout cancellation token checked between engine calls
"""

from datetime import datetime, timedelta
from typing import Callable, Optional
import logging

from core.models.entities import UserRole
from utils.exceptions import SessionExpiredException
from utils.helpers import SecurityUtils, LoggingUtils

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MINUTES = 5

class Session:
    """A logged-in actor's session.

    The session never interrupts anything itself. Callers ``check()`` it
    before each engine call; once idle past the timeout it is cancelled for
    good and the caller must log in again.
    """

    def __init__(self, username: str, role: UserRole,
                 timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES,
                 clock: Callable[[], datetime] = datetime.now):
        self.token = SecurityUtils.generate_session_token()
        self.username = username
        self.role = role
        self.timeout = timedelta(minutes=timeout_minutes)
        self._clock = clock
        self.login_time = clock()
        self.last_activity = self.login_time
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def idle_for(self) -> timedelta:
        return self._clock() - self.last_activity

    def is_expired(self) -> bool:
        return self._cancelled or self.idle_for() > self.timeout

    def cancel(self, reason: str = "logout"):
        if not self._cancelled:
            self._cancelled = True
            LoggingUtils.log_security_event("session_ended", username=self.username,
                                            details={'reason': reason})

    def check(self):
        """Raise SessionExpiredException if the session is no longer usable"""
        if self._cancelled:
            raise SessionExpiredException("Session has ended. Please log in again.")
        if self.idle_for() > self.timeout:
            self.cancel("idle_timeout")
            raise SessionExpiredException(
                f"Session expired after {self.timeout.seconds // 60} minutes of inactivity"
            )

    def touch(self):
        """Record activity, failing first if the session already timed out"""
        self.check()
        self.last_activity = self._clock()

    def remaining(self) -> Optional[timedelta]:
        if self._cancelled:
            return None
        return max(self.timeout - self.idle_for(), timedelta(0))
