"""
Analytics Service - dashboard statistics over issues and assignments.

Everything is recomputed per request from the two collections; nothing is
cached or stored.
"""

from collections import defaultdict
from datetime import timedelta
from typing import Dict, List, Optional
import logging

from civic_api.config import collections
from civic_api.config.firebase import get_db
from civic_api.models.assignment import AssignmentStatus
from civic_api.models.issue import IssueStatus
from civic_api.services.user_service import UserService
from civic_api.utils.firestore_helpers import stream_documents, where_filter
from civic_api.utils.geo import parse_timestamp, utcnow
from civic_api.utils.rounding import percentage

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_PERIOD = "30d"
TOP_WORKERS_LIMIT = 10

SECONDS_PER_DAY = 86400


def period_days(period: Optional[str]) -> int:
    """Lookback window in days. Unknown periods fall back to 30 days."""
    return PERIOD_DAYS.get(period or DEFAULT_PERIOD, PERIOD_DAYS[DEFAULT_PERIOD])


def count_by(issues: List[Dict], field: str) -> List[Dict]:
    """Grouped counts as [{key, count}], largest group first."""
    counts = defaultdict(int)
    for issue in issues:
        counts[issue.get(field)] += 1
    return [
        {"key": key, "count": count}
        for key, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
    ]


def resolution_time_stats(issues: List[Dict]) -> Dict:
    """Days from creation to resolution, over resolved issues with a resolved_at stamp."""
    durations = []
    for issue in issues:
        if issue.get("status") != IssueStatus.RESOLVED.value:
            continue
        resolved_at = parse_timestamp(issue.get("resolved_at"))
        created_at = parse_timestamp(issue.get("created_at"))
        if resolved_at is None or created_at is None:
            continue
        durations.append((resolved_at - created_at).total_seconds() / SECONDS_PER_DAY)

    if not durations:
        return {"avg": 0, "min": 0, "max": 0}
    return {
        "avg": sum(durations) / len(durations),
        "min": min(durations),
        "max": max(durations),
    }


def monthly_trend(issues: List[Dict]) -> List[Dict]:
    """Created vs resolved counts per (year, month) of creation, oldest month first."""
    buckets = defaultdict(lambda: {"count": 0, "resolved": 0})
    for issue in issues:
        created_at = parse_timestamp(issue.get("created_at"))
        if created_at is None:
            continue
        bucket = buckets[(created_at.year, created_at.month)]
        bucket["count"] += 1
        if issue.get("status") == IssueStatus.RESOLVED.value:
            bucket["resolved"] += 1

    return [
        {"year": year, "month": month, **buckets[(year, month)]}
        for year, month in sorted(buckets)
    ]


def location_data(issues: List[Dict]) -> List[Dict]:
    points = []
    for issue in issues:
        location = issue.get("location")
        if not location or location.get("latitude") is None or location.get("longitude") is None:
            continue
        points.append({
            "id": issue["id"],
            "location": location,
            "category": issue.get("category"),
            "status": issue.get("status"),
        })
    return points


class AnalyticsService:
    """Service for generating dashboard analytics."""

    def __init__(self, db=None, user_service: Optional[UserService] = None):
        self.db = db if db is not None else get_db()
        self.user_service = user_service or UserService(db=self.db)

    def get_dashboard(self, period: Optional[str] = DEFAULT_PERIOD) -> Dict:
        """
        Compute the admin dashboard.

        Overall counts cover every issue; recent_issues and monthly_trend are
        limited to the lookback window.

        Args:
            period: One of 7d, 30d, 90d, 1y

        Returns:
            Dict with overview, grouped stats, resolution time, trend,
            top workers and heatmap points
        """
        days = period_days(period)
        since = utcnow() - timedelta(days=days)

        issues = list(stream_documents(self.db.collection(collections.ISSUES)))
        recent = [
            issue for issue in issues
            if (parse_timestamp(issue.get("created_at")) or since) > since
        ]

        total = len(issues)
        resolved = sum(1 for i in issues if i.get("status") == IssueStatus.RESOLVED.value)

        logger.debug(f"Analytics over {total} issues ({len(recent)} in the last {days} days)")

        return {
            "period": period if period in PERIOD_DAYS else DEFAULT_PERIOD,
            "overview": {
                "total_issues": total,
                "recent_issues": len(recent),
                "resolved_issues": resolved,
                "pending_issues": sum(1 for i in issues if i.get("status") == IssueStatus.PENDING.value),
                "in_progress_issues": sum(1 for i in issues if i.get("status") == IssueStatus.IN_PROGRESS.value),
                "resolution_rate": percentage(resolved, total),
            },
            "category_stats": count_by(issues, "category"),
            "status_stats": count_by(issues, "status"),
            "priority_stats": count_by(issues, "priority"),
            "resolution_time": resolution_time_stats(issues),
            "monthly_trend": monthly_trend(recent),
            "top_workers": self.top_workers(),
            "location_data": location_data(issues),
        }

    def top_workers(self, limit: int = TOP_WORKERS_LIMIT) -> List[Dict]:
        """Workers ranked by completed assignments. Deleted accounts are skipped."""
        completed = defaultdict(int)
        query = where_filter(
            self.db.collection(collections.ASSIGNMENTS), "status", "==", AssignmentStatus.COMPLETED.value
        )
        for assignment in stream_documents(query):
            worker_id = assignment.get("assigned_to")
            if worker_id:
                completed[worker_id] += 1

        leaderboard = []
        for worker_id, count in sorted(completed.items(), key=lambda item: item[1], reverse=True):
            worker = self.user_service.get_user(worker_id)
            if not worker:
                continue
            leaderboard.append({
                "worker_id": worker_id,
                "worker_name": worker.get("name"),
                "worker_email": worker.get("email"),
                "completed_count": count,
            })
            if len(leaderboard) >= limit:
                break
        return leaderboard


# Global service instance
_analytics_service = None


def get_analytics_service() -> AnalyticsService:
    """Get or create AnalyticsService singleton."""
    global _analytics_service
    if _analytics_service is None:
        _analytics_service = AnalyticsService()
    return _analytics_service
