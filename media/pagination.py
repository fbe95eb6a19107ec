"""
media/pagination.py -- Fixed-size page windows over an in-memory list.

Pure arithmetic; no I/O. GET /media fetches the owner's items, filters them,
then calls paginate() on the result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from core.errors import ValidationError

PAGE_SIZE = 10

T = TypeVar("T")


@dataclass(frozen=True)
class PageMeta:
    total_pages: int
    current_page: int
    next_page: int
    prev_page: int
    total_items: int


@dataclass(frozen=True)
class Page(Generic[T]):
    window: list[T]
    meta: PageMeta


def parse_page(raw: Optional[Any]) -> int:
    """Turn the ?page= query value into an int. Missing or empty means page 1.

    Raises ValidationError for values that are not integers. Range clamping
    is paginate()'s job, not this function's.
    """
    if raw is None or raw == "":
        return 1
    if isinstance(raw, bool):
        raise ValidationError("'page' must be an integer.", field="page")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("'page' must be an integer.", field="page") from None


def paginate(items: list[T], page: int = 1, page_size: int = PAGE_SIZE) -> Page[T]:
    """Return the window for page plus navigation metadata.

    page <= 0 is treated as page 1. A page past the last one yields an empty
    window; the metadata still reports the real total_pages. next_page is
    capped at total_pages (and never drops below 1 for an empty list);
    prev_page never drops below 1.
    """
    current = max(page, 1)
    total_items = len(items)
    total_pages = math.ceil(total_items / page_size)
    start = (current - 1) * page_size
    window = items[start : start + page_size]
    meta = PageMeta(
        total_pages=total_pages,
        current_page=current,
        next_page=max(min(current + 1, total_pages), 1),
        prev_page=max(current - 1, 1),
        total_items=total_items,
    )
    return Page(window=window, meta=meta)
