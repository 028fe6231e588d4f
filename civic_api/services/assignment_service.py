"""
Assignment Service - links issues to workers and keeps assignment status in
step with issue status.

The issue write and the mirrored assignment write are two independent
single-document updates. If the second fails, the issue keeps its new
status and the assignment catches up on the next status change.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple
import logging

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.core.errors import ValidationError
from civic_api.core.permissions import Role
from civic_api.models.assignment import AssignmentStatus
from civic_api.services.issue_service import IssueService
from civic_api.services.status_workflow import IssueLifecycle
from civic_api.services.user_service import UserService
from civic_api.utils.firestore_helpers import snapshot_to_dict, stream_documents, where_filter
from civic_api.utils.geo import parse_timestamp, utcnow
from civic_api.utils.pagination import paginate

logger = logging.getLogger(__name__)

ACCOUNT_SUMMARY_FIELDS = ("name", "email", "role")
ISSUE_SUMMARY_FIELDS = ("title", "description", "category", "status", "created_at")


def _created_at(record: Dict) -> datetime:
    return parse_timestamp(record.get("created_at")) or datetime.min.replace(tzinfo=utcnow().tzinfo)


def serialize_assignment(
    assignment: Dict,
    people: Optional[Dict[str, Dict]] = None,
    issues: Optional[Dict[str, Dict]] = None,
) -> Dict:
    people = people or {}
    data = dict(assignment)
    for field in ("assigned_to", "assigned_by"):
        account_id = assignment.get(field)
        data[field] = people.get(account_id, {"id": account_id})
    if issues is not None:
        issue_id = assignment.get("issue")
        data["issue"] = issues.get(issue_id, {"id": issue_id})

    data["duration_seconds"] = None
    completed_at = parse_timestamp(assignment.get("actual_completion_date"))
    created_at = parse_timestamp(assignment.get("created_at"))
    if completed_at and created_at:
        data["duration_seconds"] = (completed_at - created_at).total_seconds()
    return data


class AssignmentService:
    """
    Service for assigning issues to workers and admin status changes.
    """

    def __init__(self, db=None, issue_service: Optional[IssueService] = None, user_service: Optional[UserService] = None):
        self.db = db if db is not None else get_db()
        self.user_service = user_service or UserService(db=self.db)
        self.issue_service = issue_service or IssueService(db=self.db, user_service=self.user_service)

    @property
    def assignments(self):
        return self.db.collection(collections.ASSIGNMENTS)

    @property
    def issues(self):
        return self.db.collection(collections.ISSUES)

    def assign(
        self,
        issue_id: str,
        worker_id: str,
        assigned_by: str,
        notes: Optional[str] = None,
        estimated_completion_date: Optional[datetime] = None,
    ) -> Dict:
        """
        Assign an issue to a worker.

        Sets the issue's assignee, forces its status to accepted and creates
        one assignment record. Re-assigning an issue adds another record; the
        newest record is the one kept in step with the issue.

        Raises:
            NotFoundError: Unknown issue
            ValidationError: Target account missing or not a worker (issue untouched)

        Returns:
            The assignment record with account summaries populated
        """
        self.issue_service.get_issue(issue_id)

        worker = self.user_service.get_user(worker_id)
        if not worker or worker.get("role") != Role.WORKER.value:
            raise ValidationError("Invalid worker assigned")

        now = utcnow()
        self.issues.document(issue_id).update({
            "assigned_to": worker_id,
            "status": IssueLifecycle.ASSIGNED_STATUS.value,
            "updated_at": now,
        })

        assignment_ref = self.assignments.document()
        assignment = {
            "issue": issue_id,
            "assigned_to": worker_id,
            "assigned_by": assigned_by,
            "status": AssignmentStatus.ASSIGNED.value,
            "notes": notes.strip() if notes else None,
            "estimated_completion_date": estimated_completion_date,
            "actual_completion_date": None,
            "created_at": now,
            "updated_at": now,
        }
        assignment_ref.set(assignment)
        assignment["id"] = assignment_ref.id

        logger.info(f"✅ Issue {issue_id} assigned to worker {worker_id} by {assigned_by} (assignment {assignment_ref.id})")

        people = self.user_service.get_summaries([worker_id, assigned_by], ACCOUNT_SUMMARY_FIELDS)
        return serialize_assignment(assignment, people=people)

    def update_status(self, issue_id: str, status, resolution_notes: Optional[str] = None) -> Dict:
        """
        Set an issue's status (any value, no reachability check) and mirror it
        onto the issue's latest assignment record, if any.

        Returns:
            The updated issue, serialized
        """
        issue = self.issue_service.get_issue(issue_id)
        update = IssueLifecycle.build_status_update(issue, status, resolution_notes)
        self.issues.document(issue_id).update(update)
        issue.update(update)

        logger.info(f"✅ Issue {issue_id} status set to {update['status']}")

        assignment = self.latest_assignment_for(issue_id)
        if assignment:
            assignment_update = IssueLifecycle.build_assignment_update(assignment, update["status"])
            self.assignments.document(assignment["id"]).update(assignment_update)
            logger.info(f"Assignment {assignment['id']} status set to {assignment_update['status']}")

        return self.issue_service._populate([issue])[0]

    def latest_assignment_for(self, issue_id: str) -> Optional[Dict]:
        records = list(stream_documents(where_filter(self.assignments, "issue", "==", issue_id)))
        if not records:
            return None
        return max(records, key=_created_at)

    def list_assignments(
        self,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Dict], Dict]:
        """Assignments, newest first, with issue and account summaries populated."""
        query = self.assignments
        if status:
            query = where_filter(query, "status", "==", status)
        if assigned_to:
            query = where_filter(query, "assigned_to", "==", assigned_to)

        records = list(stream_documents(query))
        records.sort(key=_created_at, reverse=True)
        page_items, pagination = paginate(records, page, limit)

        account_ids = [r.get("assigned_to") for r in page_items] + [r.get("assigned_by") for r in page_items]
        people = self.user_service.get_summaries(account_ids, ACCOUNT_SUMMARY_FIELDS)
        issues = self._issue_summaries(r.get("issue") for r in page_items)

        return [serialize_assignment(r, people=people, issues=issues) for r in page_items], pagination

    def _issue_summaries(self, issue_ids) -> Dict[str, Dict]:
        summaries = {}
        for issue_id in {i for i in issue_ids if i}:
            issue = snapshot_to_dict(self.issues.document(issue_id).get())
            if issue:
                summaries[issue_id] = {"id": issue_id, **{f: issue.get(f) for f in ISSUE_SUMMARY_FIELDS}}
        return summaries


# Global service instance
_assignment_service = None


def get_assignment_service() -> AssignmentService:
    """Get or create AssignmentService singleton."""
    global _assignment_service
    if _assignment_service is None:
        _assignment_service = AssignmentService()
    return _assignment_service
