"""Offset paging for list endpoints: page metadata in the shape clients expect."""

from sqlalchemy.orm import Query

from gleaner_users.core.errors import ValidationError
from gleaner_users.schemas.users import ItemsInfo, PageInfo

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def parse_fields(fields: str | None, allowed: tuple[str, ...]) -> list[str]:
    """Space or comma separated field names; empty means all. 'id' is always kept."""
    if not fields or not fields.strip():
        return list(allowed)
    names = [f for f in fields.replace(",", " ").split() if f]
    unknown = [f for f in names if f not in allowed]
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")
    if "id" not in names:
        names.insert(0, "id")
    return names


def parse_sort(sort: str | None, allowed: tuple[str, ...]) -> tuple[str, bool]:
    """'name' sorts ascending, '-name' descending. Returns (field, descending)."""
    sort = (sort or "id").strip()
    descending = sort.startswith("-")
    field = sort.lstrip("-")
    if field not in allowed:
        raise ValidationError(f"Cannot sort by '{field}'")
    return field, descending


def paginate(query: Query, limit: int, page: int) -> tuple[list, PageInfo, ItemsInfo]:
    """Run one page of query and compute the pages/items blocks."""
    limit = max(1, min(limit, MAX_LIMIT))
    page = max(1, page)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = max(1, -(-total // limit))
    begin = (page - 1) * limit + 1 if rows else 0
    end = begin + len(rows) - 1 if rows else 0
    pages = PageInfo(
        current=page,
        prev=page - 1,
        has_prev=page > 1,
        next=page + 1,
        has_next=page < total_pages,
        total=total_pages,
    )
    items = ItemsInfo(limit=limit, begin=begin, end=end, total=total)
    return rows, pages, items
