"""
Review Repository
Complaint/review stack and per-service feedback
"""

from datetime import datetime
from typing import List, Optional
import logging

from core.repositories.base_repository import BaseRepository
from core.models.entities import ServiceFeedback
from db.database import FileManager
from utils.helpers import DateUtils

logger = logging.getLogger(__name__)

REVIEWS_FILE = 'reviews.txt'
FEEDBACK_FILE = 'service_feedback.txt'

FEEDBACK_SERVICES = ('Account Opening', 'Loans', 'Transfers', 'Other')

class ReviewRepository(BaseRepository):
    """Reviews kept as a stack; the file lists them newest first"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, REVIEWS_FILE)
        # Bottom of the stack first, top last
        self._stack: List[str] = []

    def _serialize(self) -> List[str]:
        return list(reversed(self._stack))

    def _deserialize(self, lines: List[str]) -> None:
        # Reading bottom-up rebuilds the original push order
        self._stack = [line for line in reversed(lines) if line.strip()]

    def push(self, review: str) -> str:
        with self._lock:
            self._stack.append(review)
            self.save()
        return review

    def pop(self) -> Optional[str]:
        """Remove and return the most recent review, or None when there is none"""
        with self._lock:
            if not self._stack:
                return None
            review = self._stack.pop()
            self.save()
            return review

    def get_all(self) -> List[str]:
        """Reviews, newest first"""
        return list(reversed(self._stack))

    def count(self) -> int:
        return len(self._stack)

    def clear(self):
        with self._lock:
            self._stack = []

class ServiceFeedbackRepository(BaseRepository):
    """Service feedback entries (service_feedback.txt)"""

    def __init__(self, storage: FileManager):
        super().__init__(storage, FEEDBACK_FILE)
        self._entries: List[ServiceFeedback] = []

    def _serialize(self) -> List[str]:
        return [
            f"{f.username}|{f.service}|{f.text}|{DateUtils.format_timestamp(f.submitted_at)}"
            for f in self._entries
        ]

    def _deserialize(self, lines: List[str]) -> None:
        self._entries = []
        for line in lines:
            parts = self._split(line, '|', 4)
            if not parts:
                continue
            submitted_at = DateUtils.parse_timestamp(parts[3])
            if submitted_at is None:
                logger.warning(f"Feedback with unreadable timestamp kept as now: {line!r}")
                submitted_at = datetime.now()
            self._entries.append(ServiceFeedback(
                username=parts[0],
                service=parts[1],
                text=parts[2],
                submitted_at=submitted_at
            ))

    def add(self, feedback: ServiceFeedback) -> ServiceFeedback:
        with self._lock:
            self._entries.append(feedback)
            self.save()
        return feedback

    def get_all(self, service: str = None) -> List[ServiceFeedback]:
        """All feedback in submission order, optionally for one service"""
        if not service:
            return list(self._entries)
        return [f for f in self._entries if f.service == service]

    def count(self) -> int:
        return len(self._entries)

    def clear(self):
        with self._lock:
            self._entries = []
