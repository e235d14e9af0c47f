"""Page number to row-range arithmetic."""

from __future__ import annotations

from typing import Any

DEFAULT_PAGE_LIMIT = 10


def normalize_page_number(page_number: Any) -> int:
    """Clamp a user supplied page number to a valid 1-based value."""
    try:
        value = int(page_number)
    except (TypeError, ValueError):
        return 1
    return max(value, 1)


def range_start(page_number: int, page_limit: int = DEFAULT_PAGE_LIMIT) -> int:
    return (page_number - 1) * page_limit


def range_window(page_number: int, page_limit: int = DEFAULT_PAGE_LIMIT) -> tuple[int, int]:
    """Return the inclusive zero-based ``(start, end)`` rows for a page."""
    start = range_start(page_number, page_limit)
    return start, start + page_limit - 1
