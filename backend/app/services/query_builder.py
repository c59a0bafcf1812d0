"""
Turns a flat bag of list parameters (search, field filters, salary range, sort key,
page, limit) into a SQLAlchemy query plus pagination metadata.

Filters are AND-combined and absent parameters add no constraint. Every list
endpoint returns the same shape: items, total, page_count, current_page.
"""
import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Query

from ..utils.validation import validate_integer_field, validate_number_field

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
PUBLIC_JOBS_DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# Status value that means "no status filter" on owner-scoped listings.
ALL_STATUSES = "all"


@dataclass
class ListParams:
    search: str | None = None
    location: str | None = None
    category: str | None = None
    level: str | None = None
    status: str | None = None
    min_salary: Any = None
    max_salary: Any = None
    sort: str | None = None
    page: Any = None
    limit: Any = None


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page_count: int = 0
    current_page: int = DEFAULT_PAGE
    extra: dict = field(default_factory=dict)

    def envelope(self, plural: str, serialize=None) -> dict:
        """`{success, jobs: [...], totalJobs, numOfPages, currentPage}` style payload."""
        items = [serialize(i) for i in self.items] if serialize else list(self.items)
        payload = {
            "success": True,
            plural: items,
            f"total{plural[:1].upper()}{plural[1:]}": self.total,
            "numOfPages": self.page_count,
            "currentPage": self.current_page,
        }
        payload.update(self.extra)
        return payload


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve_page(page: Any, limit: Any, *, default_limit: int = DEFAULT_LIMIT) -> tuple[int, int]:
    page_num = validate_integer_field(page, "Page", min_value=1, required=False) or DEFAULT_PAGE
    page_size = validate_integer_field(limit, "Limit", min_value=1, max_value=MAX_LIMIT, required=False)
    return page_num, page_size or default_limit


def resolve_sort(sort: str | None, options: dict[str, tuple], default: str) -> tuple:
    """Unknown sort keys fall back to the entity default rather than erroring."""
    key = _clean(sort)
    return options.get(key) if key in options else options[default]


def text_search(q: Query, term: str | None, *columns) -> Query:
    term = _clean(term)
    if not term:
        return q
    needle = term.lower()
    return q.filter(or_(*[func.lower(col).contains(needle, autoescape=True) for col in columns]))


def contains_filter(q: Query, column, value: str | None) -> Query:
    value = _clean(value)
    if not value:
        return q
    return q.filter(func.lower(column).contains(value.lower(), autoescape=True))


def exact_filter(q: Query, column, value: str | None) -> Query:
    value = _clean(value)
    if not value:
        return q
    return q.filter(column == value)


def status_filter(
    q: Query, column, value: str | None, *, default: str | None = None, allow_all: bool = True
) -> Query:
    """With allow_all=False, "all" counts as absent and falls back to `default`."""
    value = _clean(value)
    value = value.lower() if value else None
    if value == ALL_STATUSES:
        if allow_all:
            return q
        value = None
    value = value or default
    if not value:
        return q
    return q.filter(column == value)


def range_filter(q: Query, column, low: Any, high: Any, field_name: str) -> Query:
    low_value = validate_number_field(low, f"Minimum {field_name}", required=False)
    high_value = validate_number_field(high, f"Maximum {field_name}", required=False)
    if low_value is not None:
        q = q.filter(column >= low_value)
    if high_value is not None:
        q = q.filter(column <= high_value)
    return q


def paginate(q: Query, order_by: tuple, page: int, limit: int) -> Page:
    total = q.order_by(None).count()
    items = q.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return Page(
        items=items,
        total=total,
        page_count=math.ceil(total / limit) if limit else 0,
        current_page=page,
    )


def status_buckets(rows, statuses: list[str]) -> dict:
    """Fold `(status, count)` rows into `{total, <status>: n, ...}` with zeros filled in."""
    counts = {s: 0 for s in statuses}
    for status, count in rows:
        if status in counts:
            counts[status] = int(count or 0)
    return {"total": sum(counts.values()), **counts}
