# backend/app/listing.py
import math
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Query

from app.constants import DEFAULT_PAGE_SIZE


def like_pattern(term: str) -> str:
    """Substring pattern for ilike with % _ and \\ taken literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def paginate(
    query: Query,
    model,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: Optional[str] = None,
    search_fields: Iterable[str] = (),
    filters: Optional[Dict[str, Any]] = None,
    date_field: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Tuple[List[Any], Dict[str, int]]:
    """
    Shared list behaviour for every collection endpoint.

    - search: case-insensitive substring match OR'ed across search_fields
    - filters: equality on each non-empty value
    - date_from / date_to: inclusive range on date_field
    - sort_by: any column of the model (400 otherwise)

    Returns (items, meta) where meta has total, total_pages, current_page.
    """
    if search:
        pattern = like_pattern(search)
        query = query.filter(
            or_(*[getattr(model, f).ilike(pattern, escape="\\") for f in search_fields])
        )

    for field, value in (filters or {}).items():
        if value is None or value == "":
            continue
        query = query.filter(getattr(model, field) == value)

    if date_field:
        column = getattr(model, date_field)
        if date_from is not None:
            query = query.filter(column >= date_from)
        if date_to is not None:
            query = query.filter(column <= date_to)

    sort_column = model.__table__.columns.get(sort_by)
    if sort_column is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot sort by '{sort_by}'.",
        )
    sort_attr = getattr(model, sort_by)
    query = query.order_by(sort_attr.desc() if sort_order == "desc" else sort_attr.asc())

    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    meta = {
        "total_pages": math.ceil(total / limit) if limit else 0,
        "current_page": page,
        "total": total,
    }
    return items, meta
