import math
from typing import Optional

from pydantic import BaseModel

from tableforge.config.settings import settings


class PaginationMeta(BaseModel):
    total: int
    page: int
    per_page: int
    last_page: int
    first_page: int = 1


def page_window(page: Optional[int], per_page: Optional[int]) -> tuple:
    """Normalise the requested page and page size."""
    page = max(page or 1, 1)
    per_page = per_page or settings.pagination_per_page
    per_page = min(max(per_page, 1), settings.pagination_max_per_page)
    return page, per_page


def build_meta(total: int, page: int, per_page: int) -> PaginationMeta:
    return PaginationMeta(
        total=total,
        page=page,
        per_page=per_page,
        last_page=max(math.ceil(total / per_page), 1),
    )
