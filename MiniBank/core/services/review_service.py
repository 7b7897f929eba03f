"""
Review Service
Complaints/reviews and service feedback
"""

from datetime import datetime
from typing import Callable, List, Optional

from core.models.entities import ServiceFeedback
from core.repositories.review_repository import (
    ReviewRepository, ServiceFeedbackRepository, FEEDBACK_SERVICES
)
from utils.exceptions import ValidationException
from utils.validators import BankingValidator
from utils.helpers import LoggingUtils

class ReviewService:
    def __init__(self, review_repo: ReviewRepository, feedback_repo: ServiceFeedbackRepository,
                 clock: Callable[[], datetime] = datetime.now):
        self.review_repo = review_repo
        self.feedback_repo = feedback_repo
        self.clock = clock

    def submit_review(self, username: str, text: str) -> str:
        if not text or not text.strip():
            raise ValidationException("Review text is required")
        if '\n' in text or '\r' in text:
            raise ValidationException("Review must be a single line")
        review = text.strip()
        self.review_repo.push(review)
        LoggingUtils.log_business_event("review_submitted", "review", self.review_repo.count(),
                                        username=username)
        return review

    def undo_last_review(self) -> Optional[str]:
        """Remove the most recent review (from any customer)"""
        return self.review_repo.pop()

    def reviews(self) -> List[str]:
        return self.review_repo.get_all()

    def submit_feedback(self, username: str, service: str, text: str) -> ServiceFeedback:
        if service not in FEEDBACK_SERVICES:
            service = 'Other'
        BankingValidator.validate_required(text, "Feedback")
        feedback = ServiceFeedback(username=username, service=service,
                                   text=text.strip(), submitted_at=self.clock())
        self.feedback_repo.add(feedback)
        LoggingUtils.log_business_event("feedback_submitted", "feedback", service, username=username)
        return feedback

    def feedback(self, service: str = None) -> List[ServiceFeedback]:
        return self.feedback_repo.get_all(service)
