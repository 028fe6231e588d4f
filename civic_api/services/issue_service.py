"""
Issue service - Firestore CRUD and listing for issue reports.

Equality filters (category, status, priority, creator, assignee) run in
Firestore. Proximity filtering, sorting and pagination run in Python over
the matching documents, since Firestore allows only one range filter per
query and has no native radius search.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
import logging

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.core.errors import AuthorizationError, ValidationError
from civic_api.core.permissions import Permission, has_permission
from civic_api.models.issue import (
    IssueCreate,
    IssuePriority,
    IssueUpdate,
    SortField,
    SortOrder,
)
from civic_api.services.engagement_service import (
    average_rating,
    has_feedback,
    has_upvoted,
    upvote_count,
)
from civic_api.services.status_workflow import IssueLifecycle
from civic_api.services.user_service import UserService
from civic_api.utils.firestore_helpers import get_or_404, stream_documents, where_filter
from civic_api.utils.geo import haversine_meters, parse_timestamp, utcnow
from civic_api.utils.pagination import paginate

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 10.0

EDITABLE_FIELDS = ("title", "description", "category", "priority", "photos")

PRIORITY_RANK = {priority.value: rank for rank, priority in enumerate(IssuePriority)}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _sort_key(sort_by: SortField):
    if sort_by == SortField.PRIORITY:
        return lambda issue: PRIORITY_RANK.get(issue.get("priority"), -1)
    if sort_by == SortField.UPVOTE_COUNT:
        return upvote_count
    if sort_by in (SortField.CREATED_AT, SortField.UPDATED_AT):
        return lambda issue: parse_timestamp(issue.get(sort_by.value)) or _EPOCH
    return lambda issue: (issue.get(sort_by.value) or "").lower()


def serialize_issue(issue: Dict, viewer_id: Optional[str] = None, people: Optional[Dict[str, Dict]] = None) -> Dict:
    """
    API view of an issue: derived counters plus creator/assignee summaries.

    Args:
        issue: Issue document (with id)
        viewer_id: Authenticated caller, adds has_upvoted / has_feedback
        people: Account summaries keyed by id
    """
    people = people or {}
    data = dict(issue)
    creator = issue.get("created_by")
    assignee = issue.get("assigned_to")
    data["created_by"] = people.get(creator, {"id": creator})
    data["assigned_to"] = people.get(assignee, {"id": assignee}) if assignee else None
    data["upvote_count"] = upvote_count(issue)
    data["feedback_count"] = len(issue.get("feedback") or [])
    data["average_rating"] = average_rating(issue)
    if viewer_id:
        data["has_upvoted"] = has_upvoted(issue, viewer_id)
        data["has_feedback"] = has_feedback(issue, viewer_id)
    return data


class IssueService:
    """
    Service for issue reports: create, read, edit, delete, list.
    """

    def __init__(self, db=None, user_service: Optional[UserService] = None):
        self.db = db if db is not None else get_db()
        self.user_service = user_service or UserService(db=self.db)

    @property
    def issues(self):
        return self.db.collection(collections.ISSUES)

    def create_issue(self, data: IssueCreate, user_id: str) -> Dict:
        """
        Store a new issue. Status always starts at pending.

        Args:
            data: Validated issue payload
            user_id: Creator's account ID

        Returns:
            Serialized issue with generated ID
        """
        now = utcnow()
        issue_ref = self.issues.document()
        issue = {
            "title": data.title.strip(),
            "description": data.description.strip(),
            "category": data.category.value,
            "priority": data.priority.value,
            "status": IssueLifecycle.INITIAL_STATUS.value,
            "location": {
                "latitude": data.location.latitude,
                "longitude": data.location.longitude,
                "address": data.location.address.strip() if data.location.address else None,
            },
            "photos": list(data.photos),
            "created_by": user_id,
            "assigned_to": None,
            "upvotes": [],
            "feedback": [],
            "resolution_notes": None,
            "resolved_at": None,
            "created_at": now,
            "updated_at": now,
        }
        issue_ref.set(issue)
        issue["id"] = issue_ref.id

        logger.info(f"✅ Issue created: {issue_ref.id} ({issue['category']}) by {user_id}")
        return self._populate([issue], viewer_id=user_id)[0]

    def get_issue(self, issue_id: str) -> Dict:
        """Raw issue document. Raises NotFoundError."""
        return get_or_404(self.issues, issue_id, "Issue")

    def get_issue_detail(self, issue_id: str, viewer_id: Optional[str] = None) -> Dict:
        return self._populate([self.get_issue(issue_id)], viewer_id=viewer_id)[0]

    def list_issues(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        created_by: Optional[str] = None,
        near: Optional[Tuple[float, float]] = None,
        radius_km: float = DEFAULT_RADIUS_KM,
        sort_by: SortField = SortField.CREATED_AT,
        sort_order: SortOrder = SortOrder.DESC,
        page: int = 1,
        limit: int = 10,
        viewer_id: Optional[str] = None,
    ) -> Tuple[List[Dict], Dict]:
        """
        Filter, sort and paginate issues.

        Args:
            near: (latitude, longitude) center for proximity filtering
            radius_km: Search radius around near

        Returns:
            (serialized issues for the page, pagination metadata)
        """
        query = self.issues
        for field, value in (
            ("category", category),
            ("status", status),
            ("priority", priority),
            ("assigned_to", assigned_to),
            ("created_by", created_by),
        ):
            if value:
                query = where_filter(query, field, "==", value)

        issues = list(stream_documents(query))

        if near is not None:
            issues = self._within_radius(issues, near, radius_km)

        issues.sort(key=_sort_key(sort_by), reverse=sort_order == SortOrder.DESC)

        page_items, pagination = paginate(issues, page, limit)
        logger.debug(
            f"Listed {len(page_items)}/{pagination['total_count']} issues: category={category}, "
            f"status={status}, priority={priority}, assigned_to={assigned_to}, near={near}"
        )
        return self._populate(page_items, viewer_id=viewer_id), pagination

    def list_my_issues(self, user_id: str, status: Optional[str] = None, page: int = 1, limit: int = 10) -> Tuple[List[Dict], Dict]:
        return self.list_issues(status=status, created_by=user_id, page=page, limit=limit, viewer_id=user_id)

    def update_issue(self, issue_id: str, changes: IssueUpdate, user: Dict) -> Dict:
        """
        Edit the reporter-owned fields of an issue.

        Raises:
            NotFoundError: Unknown issue
            AuthorizationError: Caller is neither the creator nor a moderator
            ValidationError: No editable field supplied
        """
        issue = self.get_issue(issue_id)
        self._ensure_can_modify(issue, user, "update")

        update_data = {}
        for field, value in changes.model_dump(exclude_none=True).items():
            if field not in EDITABLE_FIELDS:
                continue
            update_data[field] = getattr(value, "value", value)
        if not update_data:
            raise ValidationError("No updatable fields supplied")

        update_data["updated_at"] = utcnow()
        self.issues.document(issue_id).update(update_data)
        issue.update(update_data)

        logger.info(f"Issue {issue_id} updated by {user['id']}: {sorted(update_data)}")
        return self._populate([issue], viewer_id=user["id"])[0]

    def delete_issue(self, issue_id: str, user: Dict) -> None:
        """Hard-delete an issue. Assignment records referencing it are kept."""
        issue = self.get_issue(issue_id)
        self._ensure_can_modify(issue, user, "delete")
        self.issues.document(issue_id).delete()
        logger.info(f"Issue {issue_id} deleted by {user['id']}")

    def _ensure_can_modify(self, issue: Dict, user: Dict, action: str) -> None:
        if issue.get("created_by") == user["id"]:
            return
        if has_permission(user.get("role"), Permission.MODERATE_ISSUES):
            return
        raise AuthorizationError(f"Not authorized to {action} this issue")

    def _within_radius(self, issues: List[Dict], near: Tuple[float, float], radius_km: float) -> List[Dict]:
        lat, lng = near
        max_meters = radius_km * 1000
        matched = []
        for issue in issues:
            location = issue.get("location") or {}
            if location.get("latitude") is None or location.get("longitude") is None:
                continue
            distance = haversine_meters(lat, lng, location["latitude"], location["longitude"])
            if distance <= max_meters:
                issue["distance_km"] = round(distance / 1000, 3)
                matched.append(issue)
        return matched

    def _populate(self, issues: List[Dict], viewer_id: Optional[str] = None) -> List[Dict]:
        ids = [issue.get("created_by") for issue in issues] + [issue.get("assigned_to") for issue in issues]
        people = self.user_service.get_summaries(ids)
        return [serialize_issue(issue, viewer_id=viewer_id, people=people) for issue in issues]


# Global service instance
_issue_service = None


def get_issue_service() -> IssueService:
    """Get or create IssueService singleton."""
    global _issue_service
    if _issue_service is None:
        _issue_service = IssueService()
    return _issue_service
