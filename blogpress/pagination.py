"""Offset pagination over SQLAlchemy queries."""

import math
from dataclasses import dataclass
from typing import Any, List


@dataclass
class Page:
    """One page of results plus the totals needed to render pager links."""

    items: List[Any]
    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))


def paginate(query, page: int, per_page: int) -> Page:
    """Apply LIMIT/OFFSET for a 1-based page number; pages below 1 are treated as 1."""
    page = max(1, page)
    total = query.order_by(None).count()
    offset = (page - 1) * per_page
    if offset >= total:
        # Past the last page; also keeps huge offsets out of the SQL driver
        return Page(items=[], page=page, per_page=per_page, total=total)
    items = query.limit(per_page).offset(offset).all()
    return Page(items=items, page=page, per_page=per_page, total=total)
