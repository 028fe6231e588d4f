from datetime import timedelta

import pytest

from conftest import days_ago, insert_issue

from civic_api.config import collections
from civic_api.services.analytics_service import AnalyticsService, count_by, period_days, resolution_time_stats


@pytest.fixture
def service(db):
    return AnalyticsService(db=db)


def insert_assignment(db, worker_id, status="completed"):
    db.collection(collections.ASSIGNMENTS).document().set({
        "issue": "some-issue",
        "assigned_to": worker_id,
        "assigned_by": "admin",
        "status": status,
        "created_at": days_ago(1),
    })


def test_period_fallback():
    assert period_days("7d") == 7
    assert period_days("1y") == 365
    assert period_days(None) == 30
    assert period_days("forever") == 30


def test_resolution_rate(service, db, users):
    owner = users["citizen"]["id"]
    for _ in range(4):
        insert_issue(db, owner, status="resolved", resolved_at=days_ago(0))
    for _ in range(5):
        insert_issue(db, owner, status="pending")
    insert_issue(db, owner, status="in-progress")

    overview = service.get_dashboard("30d")["overview"]

    assert overview == {
        "total_issues": 10,
        "recent_issues": 10,
        "resolved_issues": 4,
        "pending_issues": 5,
        "in_progress_issues": 1,
        "resolution_rate": 40,
    }


def test_empty_dashboard(service):
    dashboard = service.get_dashboard()

    assert dashboard["period"] == "30d"
    assert dashboard["overview"]["resolution_rate"] == 0
    assert dashboard["resolution_time"] == {"avg": 0, "min": 0, "max": 0}
    assert dashboard["category_stats"] == []
    assert dashboard["top_workers"] == []


def test_grouped_counts_sorted_descending():
    issues = [{"category": "waste"}, {"category": "water"}, {"category": "waste"}]
    assert count_by(issues, "category") == [{"key": "waste", "count": 2}, {"key": "water", "count": 1}]


def test_resolution_time_only_counts_resolved_with_timestamp():
    created = days_ago(10)
    issues = [
        {"status": "resolved", "created_at": created, "resolved_at": created + timedelta(days=2)},
        {"status": "resolved", "created_at": created, "resolved_at": created + timedelta(days=4)},
        {"status": "resolved", "created_at": created, "resolved_at": None},
        {"status": "rejected", "created_at": created, "resolved_at": created + timedelta(days=9)},
    ]

    assert resolution_time_stats(issues) == {"avg": 3.0, "min": 2.0, "max": 4.0}


def test_resolution_time_keeps_fractional_days():
    created = days_ago(10)
    issues = [
        {"status": "resolved", "created_at": created, "resolved_at": created + timedelta(days=1, hours=6)},
        {"status": "resolved", "created_at": created, "resolved_at": created + timedelta(hours=1)},
    ]

    stats = resolution_time_stats(issues)

    assert stats["max"] == pytest.approx(1.25)
    assert stats["min"] == pytest.approx(1 / 24)
    assert stats["avg"] == pytest.approx((1.25 + 1 / 24) / 2)


def test_window_limits_recent_and_trend(service, db, users):
    owner = users["citizen"]["id"]
    insert_issue(db, owner, created_at=days_ago(2), status="resolved", resolved_at=days_ago(1))
    insert_issue(db, owner, created_at=days_ago(3))
    insert_issue(db, owner, created_at=days_ago(200))

    dashboard = service.get_dashboard("7d")

    assert dashboard["overview"]["total_issues"] == 3
    assert dashboard["overview"]["recent_issues"] == 2
    assert sum(bucket["count"] for bucket in dashboard["monthly_trend"]) == 2
    assert sum(bucket["resolved"] for bucket in dashboard["monthly_trend"]) == 1

    yearly = service.get_dashboard("1y")
    assert sum(bucket["count"] for bucket in yearly["monthly_trend"]) == 3
    months = [(b["year"], b["month"]) for b in yearly["monthly_trend"]]
    assert months == sorted(months)


def test_top_workers_skip_deleted_accounts(service, db, users):
    worker_id = users["worker"]["id"]
    for _ in range(3):
        insert_assignment(db, worker_id)
    insert_assignment(db, worker_id, status="in-progress")
    insert_assignment(db, "deleted-worker")

    assert service.top_workers() == [{
        "worker_id": worker_id,
        "worker_name": "Ravi Kumar",
        "worker_email": "ravi@civicmail.org",
        "completed_count": 3,
    }]


def test_location_data(service, db, users):
    issue_id = insert_issue(db, users["citizen"]["id"], category="streetlight")
    insert_issue(db, users["citizen"]["id"], location=None)

    points = service.get_dashboard()["location_data"]

    assert len(points) == 1
    assert points[0]["id"] == issue_id
    assert points[0]["category"] == "streetlight"
    assert points[0]["location"]["latitude"] == 12.9716
