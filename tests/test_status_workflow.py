from datetime import datetime, timedelta, timezone

import pytest

from civic_api.models.assignment import AssignmentStatus
from civic_api.models.issue import IssueStatus
from civic_api.services.status_workflow import IssueLifecycle, assignment_status_for

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=2)


@pytest.mark.parametrize(
    "issue_status, expected",
    [
        (IssueStatus.RESOLVED, AssignmentStatus.COMPLETED),
        (IssueStatus.IN_PROGRESS, AssignmentStatus.IN_PROGRESS),
        (IssueStatus.REJECTED, AssignmentStatus.REJECTED),
        (IssueStatus.PENDING, AssignmentStatus.ASSIGNED),
        (IssueStatus.ACCEPTED, AssignmentStatus.ASSIGNED),
    ],
)
def test_assignment_status_mirrors_issue_status(issue_status, expected):
    assert assignment_status_for(issue_status) == expected
    assert assignment_status_for(issue_status.value) == expected


def test_assignment_status_rejects_unknown_issue_status():
    with pytest.raises(ValueError):
        assignment_status_for("closed")


def test_first_resolution_stamps_resolved_at():
    update = IssueLifecycle.build_status_update({"status": "in-progress"}, IssueStatus.RESOLVED, now=T0)

    assert update["status"] == "resolved"
    assert update["resolved_at"] == T0
    assert update["updated_at"] == T0


def test_resolved_at_is_never_overwritten_or_cleared():
    issue = {"status": "resolved", "resolved_at": T0}

    again = IssueLifecycle.build_status_update(issue, IssueStatus.RESOLVED, now=T1)
    reopened = IssueLifecycle.build_status_update(issue, IssueStatus.IN_PROGRESS, now=T1)

    assert "resolved_at" not in again
    assert "resolved_at" not in reopened
    assert reopened["status"] == "in-progress"


def test_any_status_is_accepted_without_reachability_check():
    update = IssueLifecycle.build_status_update({"status": "rejected"}, "pending", now=T0)
    assert update["status"] == "pending"
    assert "resolved_at" not in update


def test_resolution_notes_only_written_when_given():
    with_notes = IssueLifecycle.build_status_update({}, IssueStatus.RESOLVED, "Pothole filled", now=T0)
    without = IssueLifecycle.build_status_update({}, IssueStatus.ACCEPTED, now=T0)

    assert with_notes["resolution_notes"] == "Pothole filled"
    assert "resolution_notes" not in without


def test_assignment_completion_is_stamped_once():
    first = IssueLifecycle.build_assignment_update({"status": "in-progress"}, IssueStatus.RESOLVED, now=T0)
    assert first == {"status": "completed", "updated_at": T0, "actual_completion_date": T0}

    second = IssueLifecycle.build_assignment_update(
        {"status": "completed", "actual_completion_date": T0}, IssueStatus.RESOLVED, now=T1
    )
    assert second == {"status": "completed", "updated_at": T1}


def test_feedback_only_accepted_on_resolved_issues():
    assert IssueLifecycle.accepts_feedback({"status": "resolved"})
    for status in ("pending", "accepted", "in-progress", "rejected"):
        assert not IssueLifecycle.accepts_feedback({"status": status})


def test_initial_and_assigned_statuses():
    assert IssueLifecycle.INITIAL_STATUS == IssueStatus.PENDING
    assert IssueLifecycle.ASSIGNED_STATUS == IssueStatus.ACCEPTED
