"""
Issue lifecycle rules.

States: pending → accepted → in-progress → resolved, with rejected reachable
from any non-terminal state. Admins may set any status directly; the rules
here only decide the side effects of a transition:

- the first transition to resolved stamps resolved_at, which is never
  cleared or overwritten afterwards
- an existing assignment mirrors the issue status (see ASSIGNMENT_STATUS_MAP)
- the first time an assignment becomes completed it stamps
  actual_completion_date, once

Everything in this module is pure: it takes documents as dicts and returns
the fields to write.
"""

from datetime import datetime
from typing import Dict, Optional

from civic_api.models.assignment import AssignmentStatus
from civic_api.models.issue import IssueStatus
from civic_api.utils.geo import utcnow

ASSIGNMENT_STATUS_MAP: Dict[IssueStatus, AssignmentStatus] = {
    IssueStatus.RESOLVED: AssignmentStatus.COMPLETED,
    IssueStatus.IN_PROGRESS: AssignmentStatus.IN_PROGRESS,
    IssueStatus.REJECTED: AssignmentStatus.REJECTED,
}


def assignment_status_for(issue_status) -> AssignmentStatus:
    """
    Map an issue status set by an admin onto the assignment status to write.

    resolved → completed, in-progress → in-progress, rejected → rejected,
    anything else → assigned.
    """
    return ASSIGNMENT_STATUS_MAP.get(IssueStatus(issue_status), AssignmentStatus.ASSIGNED)


class IssueLifecycle:
    """
    Status bookkeeping for issues and their assignment records.
    """

    INITIAL_STATUS = IssueStatus.PENDING
    ASSIGNED_STATUS = IssueStatus.ACCEPTED

    @classmethod
    def build_status_update(
        cls,
        issue: Dict,
        new_status,
        resolution_notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        """
        Fields to write when an admin sets an issue's status.

        Args:
            issue: Current issue document
            new_status: Any IssueStatus value (no reachability check)
            resolution_notes: Stored only when provided
            now: Timestamp to use (defaults to current UTC time)

        Returns:
            Dict of fields for a Firestore update
        """
        now = now or utcnow()
        status = IssueStatus(new_status)
        update = {"status": status.value, "updated_at": now}

        if resolution_notes:
            update["resolution_notes"] = resolution_notes

        if status == IssueStatus.RESOLVED and not issue.get("resolved_at"):
            update["resolved_at"] = now

        return update

    @classmethod
    def build_assignment_update(cls, assignment: Dict, issue_status, now: Optional[datetime] = None) -> Dict:
        """Fields to write on an assignment record after its issue changed status."""
        now = now or utcnow()
        mirrored = assignment_status_for(issue_status)
        update = {"status": mirrored.value, "updated_at": now}

        if mirrored == AssignmentStatus.COMPLETED and not assignment.get("actual_completion_date"):
            update["actual_completion_date"] = now

        return update

    @classmethod
    def accepts_feedback(cls, issue: Dict) -> bool:
        """Feedback is only taken on issues whose status is exactly resolved."""
        return issue.get("status") == IssueStatus.RESOLVED.value
