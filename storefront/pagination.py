# storefront/pagination.py
import math
from dataclasses import dataclass

from fastapi import Query


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


def pagination(default_limit: int):
    """Build a dependency reading ``page``/``limit`` query params."""
    def dependency(
        page: int = Query(1, ge=1),
        limit: int = Query(default_limit, ge=1, le=100),
    ) -> PageParams:
        return PageParams(page=page, limit=limit)

    return dependency
