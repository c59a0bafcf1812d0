import calendar
import logging
from collections import Counter
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..database import utcnow
from ..models.application import Application
from ..models.enums import ApplicationStatus, JobStatus, enum_values
from ..models.job import Job
from ..utils.error_handlers import AuthorizationError, NotFoundError, ValidationError, get_error_message
from ..utils.validation import (
    validate_datetime_field,
    validate_job_level,
    validate_job_status,
    validate_number_field,
    validate_object_id,
    validate_string_field,
    validate_string_list,
)
from .query_builder import (
    PUBLIC_JOBS_DEFAULT_LIMIT,
    ListParams,
    Page,
    contains_filter,
    exact_filter,
    paginate,
    range_filter,
    resolve_page,
    resolve_sort,
    status_buckets,
    status_filter,
    text_search,
)

logger = logging.getLogger(__name__)

PUBLIC_JOB_SORTS = {
    "latest": (Job.created_at.desc(), Job.id.desc()),
    "oldest": (Job.created_at.asc(), Job.id.asc()),
    "a-z": (Job.title.asc(), Job.id.asc()),
    "z-a": (Job.title.desc(), Job.id.desc()),
    "salary-highest": (Job.salary.desc(), Job.created_at.desc()),
    "salary-lowest": (Job.salary.asc(), Job.created_at.desc()),
}

OWNER_JOB_SORTS = {
    "latest": PUBLIC_JOB_SORTS["latest"],
    "oldest": PUBLIC_JOB_SORTS["oldest"],
    "a-z": PUBLIC_JOB_SORTS["a-z"],
    "z-a": PUBLIC_JOB_SORTS["z-a"],
    "applications-highest": (Job.application_count.desc(), Job.created_at.desc()),
}

# (field, label, max_length) for the required text fields.
_TEXT_FIELDS = (
    ("title", "Title", 200),
    ("description", "Description", 20000),
    ("location", "Location", 200),
    ("category", "Category", 100),
)
REQUIRED_FIELDS = ("title", "description", "location", "category", "salary")

STATS_MONTHS = 6


def _clean_job_fields(fields: dict[str, Any], *, partial: bool) -> dict[str, Any]:
    """
    Validate and normalize job input. With partial=True (updates) only the keys
    present are checked, and a None value means "leave unchanged" except for the
    deadline, where None clears it.
    """
    if not partial:
        missing = [name for name in REQUIRED_FIELDS if fields.get(name) in (None, "")]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    cleaned: dict[str, Any] = {}
    for name, label, max_length in _TEXT_FIELDS:
        if fields.get(name) is not None:
            cleaned[name] = validate_string_field(fields[name], label, min_length=1, max_length=max_length)

    if fields.get("salary") is not None:
        cleaned["salary"] = validate_number_field(fields["salary"], "Salary", min_value=0)
    if fields.get("level") is not None:
        cleaned["level"] = validate_job_level(fields["level"]).value
    if fields.get("status") is not None:
        cleaned["status"] = validate_job_status(fields["status"]).value
    for name, label in (("requirements", "Requirements"), ("responsibilities", "Responsibilities")):
        if fields.get(name) is not None:
            cleaned[name] = validate_string_list(fields[name], label)
    if "application_deadline" in fields:
        cleaned["application_deadline"] = validate_datetime_field(fields["application_deadline"], "applicationDeadline")

    return cleaned


def _get_owned_job(db: Session, job_id: str, requester_id: str) -> Job:
    job_id = validate_object_id(job_id, "job ID")
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_found"))
    if job.owner_id != requester_id:
        raise AuthorizationError(get_error_message("job_forbidden"))
    return job


def create_job(db: Session, owner_id: str, fields: dict[str, Any]) -> Job:
    cleaned = _clean_job_fields(fields, partial=False)
    job = Job(
        owner_id=owner_id,
        status=cleaned.pop("status", JobStatus.ACTIVE.value),
        application_count=0,
        **cleaned,
    )
    try:
        db.add(job)
        db.commit()
        db.refresh(job)
    except Exception:
        db.rollback()
        raise

    logger.info("Job %s created by %s", job.id, owner_id)
    return job


def list_jobs(db: Session, params: ListParams) -> Page:
    """Public catalog. Without an explicit status only active jobs are listed."""
    page, limit = resolve_page(params.page, params.limit, default_limit=PUBLIC_JOBS_DEFAULT_LIMIT)

    q = db.query(Job).options(joinedload(Job.owner))
    q = status_filter(q, Job.status, params.status, default=JobStatus.ACTIVE.value, allow_all=False)
    q = text_search(q, params.search, Job.title, Job.description)
    q = contains_filter(q, Job.location, params.location)
    q = exact_filter(q, Job.category, params.category)
    q = exact_filter(q, Job.level, params.level)
    q = range_filter(q, Job.salary, params.min_salary, params.max_salary, "salary")

    return paginate(q, resolve_sort(params.sort, PUBLIC_JOB_SORTS, "latest"), page, limit)


def get_job(db: Session, job_id: str) -> Job:
    job_id = validate_object_id(job_id, "job ID")
    job = db.query(Job).options(joinedload(Job.owner)).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_found"))
    return job


def update_job(db: Session, job_id: str, requester_id: str, fields: dict[str, Any]) -> Job:
    job = _get_owned_job(db, job_id, requester_id)
    cleaned = _clean_job_fields(fields, partial=True)

    for name, value in cleaned.items():
        setattr(job, name, value)
    job.updated_at = utcnow()

    try:
        db.commit()
        db.refresh(job)
    except Exception:
        db.rollback()
        raise
    return job


def delete_job(db: Session, job_id: str, requester_id: str) -> int:
    """Delete the job and every application referencing it in one transaction."""
    job = _get_owned_job(db, job_id, requester_id)
    try:
        removed = (
            db.query(Application)
            .filter(Application.job_id == job.id)
            .delete(synchronize_session=False)
        )
        db.query(Job).filter(Job.id == job.id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Job %s deleted by %s (%d applications removed)", job_id, requester_id, removed)
    return removed


def change_status(db: Session, job_id: str, requester_id: str, new_status: str | None) -> Job:
    job = _get_owned_job(db, job_id, requester_id)
    status = validate_job_status(new_status)

    job.status = status.value
    job.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(job)
    except Exception:
        db.rollback()
        raise
    return job


def count_applications_by_job(db: Session, job_ids: list[str]) -> dict[str, int]:
    if not job_ids:
        return {}
    rows = (
        db.query(Application.job_id, func.count(Application.id))
        .filter(Application.job_id.in_(job_ids))
        .group_by(Application.job_id)
        .all()
    )
    return {job_id: int(count) for job_id, count in rows}


def get_owner_jobs(db: Session, owner_id: str, params: ListParams) -> Page:
    """
    The owner's jobs with `applicationCount` recounted from the applications table
    instead of read from the denormalized column. Items are `(job, count)` pairs.
    """
    page_num, limit = resolve_page(params.page, params.limit)

    q = db.query(Job).filter(Job.owner_id == owner_id)
    q = status_filter(q, Job.status, params.status)
    q = text_search(q, params.search, Job.title, Job.description)

    page = paginate(q, resolve_sort(params.sort, OWNER_JOB_SORTS, "latest"), page_num, limit)
    counts = count_applications_by_job(db, [job.id for job in page.items])
    page.items = [(job, counts.get(job.id, 0)) for job in page.items]
    return page


def _months_ago(now: datetime, months: int) -> datetime:
    index = now.year * 12 + (now.month - 1) - months
    year, month0 = divmod(index, 12)
    day = min(now.day, calendar.monthrange(year, month0 + 1)[1])
    return now.replace(year=year, month=month0 + 1, day=day)


def get_job_stats(db: Session, owner_id: str, *, now: datetime | None = None) -> dict:
    job_rows = (
        db.query(Job.status, func.count(Job.id))
        .filter(Job.owner_id == owner_id)
        .group_by(Job.status)
        .all()
    )
    application_rows = (
        db.query(Application.status, func.count(Application.id))
        .join(Job, Application.job_id == Job.id)
        .filter(Job.owner_id == owner_id)
        .group_by(Application.status)
        .all()
    )

    cutoff = _months_ago(now or utcnow(), STATS_MONTHS)
    created = (
        db.query(Job.created_at)
        .filter(Job.owner_id == owner_id, Job.created_at >= cutoff)
        .all()
    )
    per_month = Counter((row[0].year, row[0].month) for row in created if row[0] is not None)
    monthly = [
        {"_id": {"year": year, "month": month}, "count": count}
        for (year, month), count in sorted(per_month.items())
    ]

    return {
        "jobStats": status_buckets(job_rows, enum_values(JobStatus)),
        "applicationStats": status_buckets(application_rows, enum_values(ApplicationStatus)),
        "monthlyJobStats": monthly,
    }
