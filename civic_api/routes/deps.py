"""
Request dependencies: bearer authentication and permission gates.
"""

from typing import Dict, Optional
import logging

from fastapi import Depends, Header

from civic_api.core.errors import AuthenticationError, AuthorizationError
from civic_api.core.permissions import Permission, has_permission
from civic_api.services.user_service import get_user_service

logger = logging.getLogger(__name__)


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Invalid authorization header")
    return token.strip()


def get_current_user(authorization: Optional[str] = Header(None)) -> Dict:
    """Resolve the caller from the Authorization header. 401 when absent or invalid."""
    token = _bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Not authorized, no token")
    return get_user_service().resolve_token(token)


def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[Dict]:
    """
    Like get_current_user, but callers without a usable token (absent,
    malformed, expired or for a removed account) are treated as anonymous.
    """
    try:
        token = _bearer_token(authorization)
        if token is None:
            return None
        return get_user_service().resolve_token(token)
    except AuthenticationError as e:
        logger.debug(f"Ignoring bearer token on public route: {e.message}")
        return None


def require_permission(permission: Permission):
    """Dependency factory: the caller's role must grant the given permission."""

    def checker(user: Dict = Depends(get_current_user)) -> Dict:
        if not has_permission(user.get("role"), permission):
            raise AuthorizationError(f"User role {user.get('role')} is not authorized to access this route")
        return user

    return checker
