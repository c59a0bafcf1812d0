from fastapi import Query

from ..services.query_builder import ListParams

# Numbers stay strings here so out-of-range or non-numeric values are reported by
# the query builder with the same error shape as every other validation failure.


def job_list_params(
    search: str | None = Query(default=None, description="Substring of title or description"),
    location: str | None = Query(default=None),
    category: str | None = Query(default=None),
    level: str | None = Query(default=None),
    status: str | None = Query(default=None),
    min_salary: str | None = Query(default=None, alias="minSalary"),
    max_salary: str | None = Query(default=None, alias="maxSalary"),
    sort: str | None = Query(default=None),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
) -> ListParams:
    return ListParams(
        search=search,
        location=location,
        category=category,
        level=level,
        status=status,
        min_salary=min_salary,
        max_salary=max_salary,
        sort=sort,
        page=page,
        limit=limit,
    )


def list_params(
    search: str | None = Query(default=None),
    status: str | None = Query(default=None, description="Exact status, or 'all'"),
    sort: str | None = Query(default=None),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
) -> ListParams:
    return ListParams(search=search, status=status, sort=sort, page=page, limit=limit)
