"""
Engagement Service - upvotes and post-resolution feedback on issues.

Both live as embedded lists on the issue document, with at most one entry
per user. The duplicate check and the append are a read-modify-write of a
single document.
"""

from typing import Dict, List, Optional
import logging

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.core.errors import ConflictError, ValidationError
from civic_api.services.status_workflow import IssueLifecycle
from civic_api.utils.firestore_helpers import get_or_404
from civic_api.utils.geo import utcnow
from civic_api.utils.rounding import round_half_up

logger = logging.getLogger(__name__)


def upvote_count(issue: Dict) -> int:
    return len(issue.get("upvotes") or [])


def average_rating(issue: Dict) -> float:
    """Mean feedback rating rounded to one decimal, 0 when there is no feedback."""
    ratings = [entry["rating"] for entry in issue.get("feedback") or []]
    if not ratings:
        return 0
    return round_half_up(sum(ratings) / len(ratings), 1)


def has_upvoted(issue: Dict, user_id: Optional[str]) -> bool:
    return bool(user_id) and any(entry.get("user") == user_id for entry in issue.get("upvotes") or [])


def has_feedback(issue: Dict, user_id: Optional[str]) -> bool:
    return bool(user_id) and any(entry.get("user") == user_id for entry in issue.get("feedback") or [])


class EngagementService:
    """Service for managing upvotes and feedback on issues."""

    def __init__(self, db=None):
        self.db = db if db is not None else get_db()

    @property
    def issues(self):
        return self.db.collection(collections.ISSUES)

    def upvote(self, issue_id: str, user_id: str) -> Dict:
        """
        Add the user's upvote.

        Raises:
            NotFoundError: Unknown issue
            ConflictError: The user already upvoted this issue
        """
        issue = get_or_404(self.issues, issue_id, "Issue")
        if has_upvoted(issue, user_id):
            raise ConflictError("You have already upvoted this issue")

        upvotes: List[Dict] = list(issue.get("upvotes") or [])
        upvotes.append({"user": user_id, "created_at": utcnow()})
        self.issues.document(issue_id).update({"upvotes": upvotes})

        logger.info(f"User {user_id} upvoted issue {issue_id}")
        return {"upvote_count": len(upvotes)}

    def remove_upvote(self, issue_id: str, user_id: str) -> Dict:
        """Remove the user's upvote if present. Removing a missing upvote is not an error."""
        issue = get_or_404(self.issues, issue_id, "Issue")
        existing = issue.get("upvotes") or []
        upvotes = [entry for entry in existing if entry.get("user") != user_id]

        if len(upvotes) != len(existing):
            self.issues.document(issue_id).update({"upvotes": upvotes})
            logger.info(f"User {user_id} removed upvote from issue {issue_id}")

        return {"upvote_count": len(upvotes)}

    def submit_feedback(self, issue_id: str, user_id: str, rating: int, comment: Optional[str] = None) -> Dict:
        """
        Rate a resolved issue.

        Raises:
            NotFoundError: Unknown issue
            ValidationError: Issue is not resolved, or rating outside 1-5
            ConflictError: The user already left feedback
        """
        issue = get_or_404(self.issues, issue_id, "Issue")
        if not IssueLifecycle.accepts_feedback(issue):
            raise ValidationError("Feedback can only be submitted for resolved issues")
        if has_feedback(issue, user_id):
            raise ConflictError("You have already submitted feedback for this issue")
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")

        feedback: List[Dict] = list(issue.get("feedback") or [])
        feedback.append({
            "user": user_id,
            "rating": rating,
            "comment": comment.strip() if comment else None,
            "created_at": utcnow(),
        })
        self.issues.document(issue_id).update({"feedback": feedback})
        issue["feedback"] = feedback

        logger.info(f"User {user_id} rated issue {issue_id}: {rating}")
        return {
            "average_rating": average_rating(issue),
            "feedback_count": len(feedback),
        }


# Global service instance
_engagement_service = None


def get_engagement_service() -> EngagementService:
    """Get or create EngagementService singleton."""
    global _engagement_service
    if _engagement_service is None:
        _engagement_service = EngagementService()
    return _engagement_service
