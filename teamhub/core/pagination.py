from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass(slots=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_LIMIT

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def build_page(items: list[dict[str, Any]], total: int, request: PageRequest) -> dict[str, Any]:
    """Shape a listing response; an empty result is a valid page."""
    return {
        "items": items,
        "totalPages": math.ceil(total / request.limit) if total else 0,
        "currentPage": request.page,
        "totalItems": total,
    }


def matches_search(search: str | None, *values: str | None) -> bool:
    """Case-insensitive substring match over any of the given fields."""
    if not search:
        return True
    keyword = search.strip().lower()
    if not keyword:
        return True
    return any(keyword in (value or "").lower() for value in values)
