"""
Admin endpoints - triage, assignment, status workflow and dashboards.

Every route here requires an account whose role grants the relevant
permission; citizens and workers get a 403.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from civic_api.core.permissions import Permission
from civic_api.models.assignment import AssignmentStatus
from civic_api.models.base import ok
from civic_api.models.issue import (
    AssignRequest,
    IssueCategory,
    IssuePriority,
    IssueStatus,
    SortField,
    SortOrder,
    StatusUpdateRequest,
)
from civic_api.routes.deps import require_permission
from civic_api.services.analytics_service import DEFAULT_PERIOD, get_analytics_service
from civic_api.services.assignment_service import get_assignment_service
from civic_api.services.issue_service import get_issue_service
from civic_api.services.user_service import get_user_service
from civic_api.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

manage_assignments = require_permission(Permission.MANAGE_ASSIGNMENTS)


@router.get("/issues")
async def list_issues(
    category: Optional[IssueCategory] = Query(None, description="Filter by category"),
    status: Optional[IssueStatus] = Query(None, description="Filter by status"),
    priority: Optional[IssuePriority] = Query(None, description="Filter by priority"),
    assigned_to: Optional[str] = Query(None, description="Filter by worker ID"),
    sort_by: SortField = Query(SortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: Dict = Depends(require_permission(Permission.MODERATE_ISSUES)),
):
    """Issue listing for triage, with an assignee filter and no proximity search."""
    issues, pagination = get_issue_service().list_issues(
        category=category.value if category else None,
        status=status.value if status else None,
        priority=priority.value if priority else None,
        assigned_to=assigned_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ok({"issues": issues, "pagination": pagination})


@router.put("/issues/{issue_id}/assign")
async def assign_issue(issue_id: str, request: AssignRequest, admin: Dict = Depends(manage_assignments)):
    """
    Assign an issue to a worker.

    The issue moves to `accepted` and a new assignment record is created.
    Assigning an already-assigned issue adds another record; the newest one
    follows later status changes.
    """
    assignment = get_assignment_service().assign(
        issue_id,
        request.assigned_to,
        admin["id"],
        notes=request.notes,
        estimated_completion_date=request.estimated_completion_date,
    )
    return ok({"assignment": assignment}, message="Issue assigned successfully")


@router.put("/issues/{issue_id}/status")
async def update_issue_status(issue_id: str, request: StatusUpdateRequest, admin: Dict = Depends(manage_assignments)):
    """
    Set an issue's status directly. Any status is accepted.

    The latest assignment for the issue, if any, mirrors the change:
    resolved → completed, in-progress → in-progress, rejected → rejected,
    anything else → assigned.
    """
    issue = get_assignment_service().update_status(issue_id, request.status, request.resolution_notes)
    logger.info(f"Admin {admin['id']} set issue {issue_id} to {request.status.value}")
    return ok({"issue": issue}, message="Issue status updated successfully")


@router.get("/analytics")
async def get_analytics(
    period: str = Query(DEFAULT_PERIOD, description="7d, 30d, 90d or 1y; anything else means 30d"),
    admin: Dict = Depends(require_permission(Permission.VIEW_ANALYTICS)),
):
    return ok(get_analytics_service().get_dashboard(period))


@router.get("/workers")
async def list_workers(admin: Dict = Depends(manage_assignments)):
    return ok({"workers": get_user_service().list_workers()})


@router.get("/assignments")
async def list_assignments(
    status: Optional[AssignmentStatus] = Query(None, description="Filter by assignment status"),
    assigned_to: Optional[str] = Query(None, description="Filter by worker ID"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: Dict = Depends(manage_assignments),
):
    assignments, pagination = get_assignment_service().list_assignments(
        status=status.value if status else None,
        assigned_to=assigned_to,
        page=page,
        limit=limit,
    )
    return ok({"assignments": assignments, "pagination": pagination})
