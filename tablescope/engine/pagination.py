from __future__ import annotations

from .models import DEFAULT_PAGE_SIZE, PageWindow


def page_window(total: int, page_size: int | None, requested_page: int | None) -> PageWindow:
    """Clamp ``requested_page`` into range and compute the matching offset/limit.

    Always returns a usable window; ``total == 0`` yields one empty page.
    """
    total = max(0, int(total))
    if page_size is None or page_size <= 0:
        page_size = DEFAULT_PAGE_SIZE
    pages = max(1, -(-total // page_size))
    page = min(max(1, int(requested_page or 1)), pages)
    offset = (page - 1) * page_size
    limit = max(0, min(page_size, total - offset))
    return PageWindow(
        page=page,
        pages=pages,
        page_size=page_size,
        offset=offset,
        limit=limit,
        total=total,
    )
