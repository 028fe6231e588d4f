"""
Issue endpoints - public listing, citizen reporting and engagement.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from civic_api.core.permissions import Permission
from civic_api.models.base import ok
from civic_api.models.issue import (
    FeedbackCreate,
    IssueCategory,
    IssueCreate,
    IssuePriority,
    IssueStatus,
    IssueUpdate,
    SortField,
    SortOrder,
)
from civic_api.routes.deps import get_current_user, get_optional_user, require_permission
from civic_api.services.engagement_service import get_engagement_service
from civic_api.services.issue_service import DEFAULT_RADIUS_KM, get_issue_service
from civic_api.utils.geo import parse_coordinates
from civic_api.utils.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/issues", tags=["Issues"])


def _value(enum_member) -> Optional[str]:
    return enum_member.value if enum_member is not None else None


@router.get("")
async def list_issues(
    category: Optional[IssueCategory] = Query(None, description="Filter by category"),
    status: Optional[IssueStatus] = Query(None, description="Filter by status"),
    priority: Optional[IssuePriority] = Query(None, description="Filter by priority"),
    near: Optional[str] = Query(None, description="Proximity center as 'lat,lng'"),
    radius_km: float = Query(DEFAULT_RADIUS_KM, gt=0, le=20000, description="Search radius in km"),
    sort_by: SortField = Query(SortField.CREATED_AT),
    sort_order: SortOrder = Query(SortOrder.DESC),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: Optional[Dict] = Depends(get_optional_user),
):
    """
    List issues with filters, proximity search, sorting and pagination.

    An unparsable `near` value is ignored rather than rejected.
    """
    issues, pagination = get_issue_service().list_issues(
        category=_value(category),
        status=_value(status),
        priority=_value(priority),
        near=parse_coordinates(near),
        radius_km=radius_km,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        viewer_id=user["id"] if user else None,
    )
    return ok({"issues": issues, "pagination": pagination})


# Declared before /{issue_id} so "my-issues" is not captured as an id
@router.get("/my-issues")
async def my_issues(
    status: Optional[IssueStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: Dict = Depends(get_current_user),
):
    issues, pagination = get_issue_service().list_my_issues(user["id"], status=_value(status), page=page, limit=limit)
    return ok({"issues": issues, "pagination": pagination})


@router.get("/{issue_id}")
async def get_issue(issue_id: str, user: Optional[Dict] = Depends(get_optional_user)):
    issue = get_issue_service().get_issue_detail(issue_id, viewer_id=user["id"] if user else None)
    return ok({"issue": issue})


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_issue(
    request: IssueCreate,
    user: Dict = Depends(require_permission(Permission.REPORT_ISSUES)),
):
    issue = get_issue_service().create_issue(request, user["id"])
    return ok({"issue": issue}, message="Issue created successfully")


@router.put("/{issue_id}")
async def update_issue(issue_id: str, request: IssueUpdate, user: Dict = Depends(get_current_user)):
    issue = get_issue_service().update_issue(issue_id, request, user)
    return ok({"issue": issue}, message="Issue updated successfully")


@router.delete("/{issue_id}")
async def delete_issue(issue_id: str, user: Dict = Depends(get_current_user)):
    get_issue_service().delete_issue(issue_id, user)
    return ok(message="Issue deleted successfully")


@router.post("/{issue_id}/upvote")
async def upvote_issue(issue_id: str, user: Dict = Depends(require_permission(Permission.ENGAGE))):
    result = get_engagement_service().upvote(issue_id, user["id"])
    return ok(result, message="Issue upvoted successfully")


@router.delete("/{issue_id}/upvote")
async def remove_upvote(issue_id: str, user: Dict = Depends(require_permission(Permission.ENGAGE))):
    result = get_engagement_service().remove_upvote(issue_id, user["id"])
    return ok(result, message="Upvote removed successfully")


@router.post("/{issue_id}/feedback")
async def submit_feedback(
    issue_id: str,
    request: FeedbackCreate,
    user: Dict = Depends(require_permission(Permission.ENGAGE)),
):
    """Rate a resolved issue (1-5). One feedback entry per user."""
    result = get_engagement_service().submit_feedback(issue_id, user["id"], request.rating, request.comment)
    return ok(result, message="Feedback submitted successfully")
