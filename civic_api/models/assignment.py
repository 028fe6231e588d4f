from enum import Enum


class AssignmentStatus(str, Enum):
    """Assignment status mirrors, but is not identical to, the issue status."""
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
