# inkhall/services/pagination.py
from typing import Any

from sqlalchemy.orm import Query


def paginate(query: Query, *, page: int, limit: int) -> tuple[list[Any], int]:
    """
    Return one page of ``query`` plus the total row count.

    ``query`` should already carry its filters and ordering.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, total
