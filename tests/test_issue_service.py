import pytest

from conftest import days_ago, insert_issue

from civic_api.core.errors import AuthorizationError, NotFoundError, ValidationError
from civic_api.models.issue import IssueCreate, IssueUpdate, SortField, SortOrder
from civic_api.services.issue_service import IssueService

MG_ROAD = (12.9716, 77.5946)


@pytest.fixture
def service(db):
    return IssueService(db=db)


def new_issue(**overrides):
    payload = {
        "title": "Deep pothole on 80 Feet Road",
        "description": "A pothole near the signal is damaging two-wheelers.",
        "category": "pothole",
        "location": {"latitude": MG_ROAD[0], "longitude": MG_ROAD[1], "address": "80 Feet Road"},
    }
    payload.update(overrides)
    return IssueCreate(**payload)


def test_create_issue_defaults(service, users):
    issue = service.create_issue(new_issue(), users["citizen"]["id"])

    assert issue["id"]
    assert issue["status"] == "pending"
    assert issue["priority"] == "medium"
    assert issue["photos"] == []
    assert issue["assigned_to"] is None
    assert issue["resolved_at"] is None
    assert issue["created_by"] == {"id": users["citizen"]["id"], "name": "Asha Rao", "email": "asha@civicmail.org"}
    assert issue["upvote_count"] == 0
    assert issue["average_rating"] == 0
    assert issue["has_upvoted"] is False


def test_get_unknown_issue(service):
    with pytest.raises(NotFoundError):
        service.get_issue_detail("nope")


def test_list_filters_by_equality_fields(service, db, users):
    owner = users["citizen"]["id"]
    insert_issue(db, owner, category="waste", status="pending")
    insert_issue(db, owner, category="waste", status="resolved")
    insert_issue(db, owner, category="water", status="pending", priority="urgent")

    waste, pagination = service.list_issues(category="waste")
    assert {i["category"] for i in waste} == {"waste"}
    assert pagination["total_count"] == 2

    pending_waste, _ = service.list_issues(category="waste", status="pending")
    assert len(pending_waste) == 1

    urgent, _ = service.list_issues(priority="urgent")
    assert [i["category"] for i in urgent] == ["water"]


def test_list_within_radius(service, db, users):
    owner = users["citizen"]["id"]
    near_id = insert_issue(db, owner, location={"latitude": 12.9750, "longitude": 77.5990, "address": None})
    insert_issue(db, owner, location={"latitude": 13.3000, "longitude": 77.5946, "address": None})

    issues, _ = service.list_issues(near=MG_ROAD, radius_km=5)

    assert [i["id"] for i in issues] == [near_id]
    assert 0 < issues[0]["distance_km"] < 1


def test_list_sorting_and_pagination(service, db, users):
    owner = users["citizen"]["id"]
    for age in range(25):
        insert_issue(db, owner, title=f"Issue number {age:02d}", created_at=days_ago(age))

    newest_first, pagination = service.list_issues(page=2, limit=10)
    assert [i["title"] for i in newest_first] == [f"Issue number {n:02d}" for n in range(10, 20)]
    assert pagination["total_pages"] == 3
    assert pagination["has_next"] and pagination["has_prev"]

    oldest_first, _ = service.list_issues(sort_order=SortOrder.ASC, limit=1)
    assert oldest_first[0]["title"] == "Issue number 24"


def test_list_sorted_by_priority_rank(service, db, users):
    owner = users["citizen"]["id"]
    for priority in ("medium", "urgent", "low", "high"):
        insert_issue(db, owner, priority=priority)

    issues, _ = service.list_issues(sort_by=SortField.PRIORITY, sort_order=SortOrder.DESC)
    assert [i["priority"] for i in issues] == ["urgent", "high", "medium", "low"]


def test_list_sorted_by_upvotes(service, db, users):
    owner = users["citizen"]["id"]
    quiet = insert_issue(db, owner)
    popular = insert_issue(db, owner, upvotes=[{"user": "a"}, {"user": "b"}])

    issues, _ = service.list_issues(sort_by=SortField.UPVOTE_COUNT)
    assert [i["id"] for i in issues] == [popular, quiet]


def test_viewer_flags(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"], upvotes=[{"user": users["neighbor"]["id"]}])

    issue = service.get_issue_detail(issue_id, viewer_id=users["neighbor"]["id"])
    assert issue["has_upvoted"] is True
    assert issue["has_feedback"] is False

    anonymous = service.get_issue_detail(issue_id)
    assert "has_upvoted" not in anonymous


def test_my_issues_only_returns_own(service, db, users):
    mine = insert_issue(db, users["citizen"]["id"])
    insert_issue(db, users["neighbor"]["id"])

    issues, pagination = service.list_my_issues(users["citizen"]["id"])
    assert [i["id"] for i in issues] == [mine]
    assert pagination["total_count"] == 1


def test_owner_and_admin_can_update(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])

    updated = service.update_issue(issue_id, IssueUpdate(priority="high"), users["citizen"])
    assert updated["priority"] == "high"

    updated = service.update_issue(issue_id, IssueUpdate(title="Garbage dumped on footpath"), users["admin"])
    assert updated["title"] == "Garbage dumped on footpath"
    assert updated["priority"] == "high"


def test_other_citizen_cannot_update_or_delete(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])

    with pytest.raises(AuthorizationError):
        service.update_issue(issue_id, IssueUpdate(priority="low"), users["neighbor"])
    with pytest.raises(AuthorizationError):
        service.delete_issue(issue_id, users["worker"])


def test_update_ignores_non_editable_fields(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])

    with pytest.raises(ValidationError):
        service.update_issue(issue_id, IssueUpdate(status="resolved"), users["citizen"])

    assert service.get_issue(issue_id)["status"] == "pending"


def test_delete_issue(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"])

    service.delete_issue(issue_id, users["citizen"])

    with pytest.raises(NotFoundError):
        service.get_issue(issue_id)
