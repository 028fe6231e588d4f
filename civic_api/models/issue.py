"""
Pydantic models for issue reports.
These models handle validation for issue submission, edits and admin actions.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, Field

PHOTO_URL_PATTERN = r"(?i)^https?://.+\.(jpg|jpeg|png|gif|webp)$"

PhotoUrl = Annotated[str, Field(pattern=PHOTO_URL_PATTERN, max_length=2048)]


class IssueCategory(str, Enum):
    WASTE = "waste"
    POTHOLE = "pothole"
    STREETLIGHT = "streetlight"
    GREENERY = "greenery"
    WATER = "water"
    ELECTRICITY = "electricity"
    ROAD = "road"
    OTHER = "other"


class IssuePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class IssueStatus(str, Enum):
    """
    Issue lifecycle:
    pending → accepted → in-progress → resolved, with rejected reachable
    from any non-terminal state.
    """
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class SortField(str, Enum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    PRIORITY = "priority"
    STATUS = "status"
    TITLE = "title"
    UPVOTE_COUNT = "upvote_count"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class LocationIn(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=200)


class IssueCreate(BaseModel):
    """
    Model for creating a new issue (incoming POST request).
    Status is never client-supplied; new issues start as pending.
    """
    title: str = Field(..., min_length=5, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    category: IssueCategory
    priority: IssuePriority = IssuePriority.MEDIUM
    location: LocationIn
    photos: List[PhotoUrl] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Broken streetlight on 5th Cross",
                "description": "The streetlight outside house 42 has been off for a week.",
                "category": "streetlight",
                "priority": "high",
                "location": {"latitude": 12.9718, "longitude": 77.5940, "address": "5th Cross, Indiranagar"},
                "photos": ["https://cdn.example.org/photos/streetlight.jpg"],
            }
        }


class IssueUpdate(BaseModel):
    """Fields a creator (or admin) may edit after submission."""
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    category: Optional[IssueCategory] = None
    priority: Optional[IssuePriority] = None
    photos: Optional[List[PhotoUrl]] = None

    class Config:
        extra = "ignore"


class FeedbackCreate(BaseModel):
    # Range is checked by the service, after the resolved-status gate
    rating: int = Field(..., description="1-5")
    comment: Optional[str] = Field(None, max_length=500)


class AssignRequest(BaseModel):
    assigned_to: str = Field(..., min_length=1, description="Worker account ID")
    notes: Optional[str] = Field(None, max_length=500)
    estimated_completion_date: Optional[datetime] = None


class StatusUpdateRequest(BaseModel):
    status: IssueStatus
    resolution_notes: Optional[str] = Field(None, max_length=1000)
