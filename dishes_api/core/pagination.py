from typing import Any, Optional

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


def clamp_pagination(page: Any, limit: Any, default_limit: int = DEFAULT_PAGE_SIZE) -> tuple:
    """Return ``(page, limit, offset)`` with page >= 1 and 1 <= limit <= 100"""
    try:
        page_num = int(page)
    except (TypeError, ValueError):
        page_num = 1
    try:
        limit_num = int(limit)
    except (TypeError, ValueError):
        limit_num = default_limit
    page_num = max(1, page_num)
    limit_num = min(MAX_PAGE_SIZE, max(1, limit_num))
    return page_num, limit_num, (page_num - 1) * limit_num


def sanitize_search(search: Optional[str]) -> str:
    """Trim and drop characters that would break a PostgREST or() filter"""
    if not search:
        return ""
    return "".join(ch for ch in search.strip() if ch not in ",()")
