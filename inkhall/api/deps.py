# inkhall/api/deps.py
from dataclasses import dataclass

from fastapi import Query

from inkhall.core.config import settings
from inkhall.core.timeutils import utcnow


@dataclass
class PageParams:
    page: int
    limit: int


def page_params(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
) -> PageParams:
    return PageParams(page=page, limit=limit)


def year_param(year: int | None = Query(None, ge=2020, le=2100)) -> int:
    # 不传就用今年
    return year if year is not None else utcnow().year
