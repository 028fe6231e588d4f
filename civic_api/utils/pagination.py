"""
Page/limit pagination over an already filtered and sorted result list.
"""

import math
from typing import Dict, List, Sequence, Tuple

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def build_pagination(total: int, page: int, limit: int) -> Dict:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_count": total,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def paginate(items: Sequence, page: int, limit: int) -> Tuple[List, Dict]:
    """
    Slice one page out of items.

    Args:
        items: Full result list, already in display order
        page: 1-based page number
        limit: Page size

    Returns:
        (page_items, pagination metadata)
    """
    if page < 1:
        raise ValueError("page must be >= 1")
    if limit < 1:
        raise ValueError("limit must be >= 1")
    skip = (page - 1) * limit
    return list(items[skip:skip + limit]), build_pagination(len(items), page, limit)
