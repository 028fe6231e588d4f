"""
Response envelope shared by every endpoint.

    { success: bool, message?: str, data?: {...}, errors?: [...] }
"""

from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class ApiResponse(BaseModel):
    """
    Uniform API response envelope.
    Optional members are omitted from the JSON body when unset.
    """
    success: bool = True
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    errors: Optional[List[Any]] = None


def _envelope(response: ApiResponse) -> Dict[str, Any]:
    # Only top-level members are dropped; None values inside data are kept.
    return {key: value for key, value in response.model_dump().items() if value is not None}


def ok(data: Optional[Dict[str, Any]] = None, message: Optional[str] = None) -> Dict[str, Any]:
    return _envelope(ApiResponse(success=True, message=message, data=data))


def fail(message: str, errors: Optional[List[Any]] = None) -> Dict[str, Any]:
    return _envelope(ApiResponse(success=False, message=message, errors=errors))
