"""Pagination helpers for collections whose total size is unknown."""

import math
from typing import List, Tuple, Union

PageNumber = Union[int, str]

ELLIPSIS = "..."
MAX_PAGES_TO_SHOW = 5


def estimate_total_items(page: int, page_size: int, received: int) -> int:
    """
    Estimate the collection size from one page, since the service sends no total.

    A short page pins the total exactly. A full page only says "at least one
    more item", so the estimate is page * page_size + 1. When the collection
    ends exactly on a page boundary this overstates the total by one page;
    callers treat the value as a lower bound.
    """
    if received < page_size:
        return (page - 1) * page_size + received
    return page * page_size + 1


def estimated_total_pages(total_items: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total_items / page_size)


def page_range(page: int, page_size: int, shown: int) -> Tuple[int, int]:
    """Return the 1-based (first, last) item numbers for a page holding `shown` items."""
    first = (page - 1) * page_size + 1
    last = min(page * page_size, (page - 1) * page_size + shown)
    return first, last


def page_numbers(
    current_page: int,
    total_items: int,
    page_size: int,
    can_go_next: bool,
    max_pages: int = MAX_PAGES_TO_SHOW,
) -> List[PageNumber]:
    """
    Build the list of page buttons to show, with "..." for gaps.

    Args:
        current_page: 1-based current page.
        total_items: Total (possibly estimated) item count.
        page_size: Items per page.
        can_go_next: Whether another page may exist beyond the estimate.
        max_pages: Number of pages shown before collapsing into a window.

    Returns:
        e.g. [1, "...", 4, 5, 6, "...", 12]
    """
    total_pages = estimated_total_pages(total_items, page_size)
    pages: List[PageNumber] = []

    if total_pages <= max_pages + 2:
        pages.extend(range(1, total_pages + 1))
        if can_go_next and current_page >= total_pages:
            pages.append(current_page + 1)
        return pages

    pages.append(1)
    start = max(2, current_page - 1)
    end = min(total_pages - 1, current_page + 1)
    if can_go_next and current_page > total_pages - 2:
        # Near the estimated end with more data likely: offer the next page.
        end = max(end, current_page + 1)

    if start > 2:
        pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages - 1:
        pages.append(ELLIPSIS)

    if not can_go_next:
        pages.append(total_pages)
    return pages
