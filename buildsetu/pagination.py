import math
from dataclasses import dataclass
from typing import Any, List

from buildsetu.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from buildsetu.errors import ValidationError


@dataclass
class Page:
    items: List[Any]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
        }


def paginate(query, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT) -> Page:
    """Apply page/limit to an ordered query and count the unpaged total."""
    if page < 1:
        raise ValidationError("Page must be a positive number", reason="invalid_page")
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(
            f"Limit must be between 1 and {MAX_PAGE_LIMIT}",
            reason="invalid_limit",
        )

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, page=page, limit=limit, total=total)
