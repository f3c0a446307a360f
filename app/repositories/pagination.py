import math
from dataclasses import dataclass
from typing import Any, List

from sqlalchemy.orm import Query

MAX_PAGE_SIZE = 200
DEFAULT_PAGE_SIZE = 25


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    size: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


def clamp_page(page: int, size: int):
    """Normalize zero-based page index and page size (1..200)."""
    return max(0, page), max(1, min(size, MAX_PAGE_SIZE))


def paginate(query: Query, page: int = 0, size: int = DEFAULT_PAGE_SIZE) -> Page:
    page, size = clamp_page(page, size)
    total = query.order_by(None).count()
    items = query.offset(page * size).limit(size).all()
    return Page(items=items, total=total, page=page, size=size)
