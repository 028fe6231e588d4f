import pytest

from conftest import insert_issue

from civic_api.core.errors import ConflictError, NotFoundError, ValidationError
from civic_api.services.engagement_service import EngagementService, average_rating


@pytest.fixture
def service(db):
    return EngagementService(db=db)


def test_upvote_once_per_user(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])

    assert service.upvote(issue_id, users["citizen"]["id"]) == {"upvote_count": 1}
    assert service.upvote(issue_id, users["neighbor"]["id"]) == {"upvote_count": 2}

    with pytest.raises(ConflictError):
        service.upvote(issue_id, users["citizen"]["id"])


def test_remove_upvote_is_idempotent(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])
    service.upvote(issue_id, users["neighbor"]["id"])

    assert service.remove_upvote(issue_id, users["neighbor"]["id"]) == {"upvote_count": 0}
    assert service.remove_upvote(issue_id, users["neighbor"]["id"]) == {"upvote_count": 0}


def test_upvote_unknown_issue(service, users):
    with pytest.raises(NotFoundError):
        service.upvote("missing-issue", users["citizen"]["id"])


@pytest.mark.parametrize("rating", [4, 0, 9])
def test_feedback_on_pending_issue_fails_regardless_of_rating(service, db, users, rating):
    issue_id = insert_issue(db, users["citizen"]["id"], status="pending")

    with pytest.raises(ValidationError) as exc_info:
        service.submit_feedback(issue_id, users["citizen"]["id"], rating)
    assert "resolved" in exc_info.value.message


def test_feedback_average_and_duplicates(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"], status="resolved")

    service.submit_feedback(issue_id, users["citizen"]["id"], 5, "Quick fix, thanks")
    service.submit_feedback(issue_id, users["neighbor"]["id"], 3)
    result = service.submit_feedback(issue_id, users["worker"]["id"], 4)

    assert result == {"average_rating": 4.0, "feedback_count": 3}

    with pytest.raises(ConflictError):
        service.submit_feedback(issue_id, users["neighbor"]["id"], 5)


def test_feedback_rating_range_checked_on_resolved_issue(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"], status="resolved")

    with pytest.raises(ValidationError):
        service.submit_feedback(issue_id, users["citizen"]["id"], 6)
    with pytest.raises(ValidationError):
        service.submit_feedback(issue_id, users["citizen"]["id"], 0)


def test_average_rating():
    assert average_rating({"feedback": [{"rating": 5}, {"rating": 3}, {"rating": 4}]}) == 4.0
    assert average_rating({"feedback": [{"rating": 5}, {"rating": 4}]}) == 4.5
    assert average_rating({"feedback": [{"rating": 1}, {"rating": 2}, {"rating": 2}]}) == 1.7
    assert average_rating({"feedback": []}) == 0
    assert average_rating({}) == 0
