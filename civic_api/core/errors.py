"""
Domain exceptions for the Civic Issues API.

Services raise these; the handlers registered in main.py turn them into
the standard response envelope with the matching HTTP status.
"""

from typing import Any, Dict, List, Optional


class CivicAPIError(Exception):
    """Base class for errors that map onto a structured API response."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(CivicAPIError):
    """Malformed or out-of-range input, or a request the domain rules forbid."""

    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(CivicAPIError):
    """Missing or invalid credentials."""

    status_code = 401
    default_message = "Not authenticated"


class AuthorizationError(CivicAPIError):
    """Caller lacks the required role or ownership."""

    status_code = 403
    default_message = "Not authorized to perform this action"


class NotFoundError(CivicAPIError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(CivicAPIError):
    """Duplicate contribution or a state that already holds."""

    status_code = 409
    default_message = "Conflict"


class NotificationError(CivicAPIError):
    """Outbound email/SMS delivery failed or is not configured."""

    status_code = 502
    default_message = "Notification delivery failed"
