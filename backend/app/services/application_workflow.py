"""
Application lifecycle: submit, review, withdraw.

The job's `application_count` is a denormalized cache of how many applications
reference it. Submission and withdrawal update it in the same transaction as the
row they create or delete, using an in-database `count = count +/- 1` so
concurrent requests never lose an update. `count_sync.resync_application_counts`
stays around as the repair path.
"""
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..database import utcnow
from ..models.application import Application
from ..models.enums import ApplicationStatus, JobStatus, enum_values
from ..models.job import Job
from ..models.user import User
from ..utils.error_handlers import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    get_error_message,
)
from ..utils.validation import (
    validate_application_status,
    validate_object_id,
    validate_string_field,
)
from .query_builder import ListParams, Page, paginate, resolve_page, resolve_sort, status_buckets, status_filter

logger = logging.getLogger(__name__)

APPLICATION_SORTS = {
    "newest": (Application.created_at.desc(), Application.id.desc()),
    "oldest": (Application.created_at.asc(), Application.id.asc()),
    "status-asc": (Application.status.asc(), Application.created_at.desc()),
    "status-desc": (Application.status.desc(), Application.created_at.desc()),
}


def _statuses() -> list[str]:
    return enum_values(ApplicationStatus)


def _get_application(db: Session, application_id: str, *options) -> Application:
    application_id = validate_object_id(application_id, "application ID")
    q = db.query(Application)
    if options:
        q = q.options(*options)
    application = q.filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError(get_error_message("application_not_found"))
    return application


def ensure_can_submit(db: Session, applicant_id: str, job_id: str) -> Job:
    """
    Pre-flight for `submit`: the job must exist and be active and the applicant must
    not have applied yet. Lets callers fail before doing expensive work like uploads.
    """
    job_id = validate_object_id(job_id, "job ID")
    job = db.query(Job).filter(Job.id == job_id, Job.status == JobStatus.ACTIVE.value).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_accepting"))

    existing = (
        db.query(Application.id)
        .filter(Application.job_id == job.id, Application.applicant_id == applicant_id)
        .first()
    )
    if existing:
        raise ConflictError(get_error_message("already_applied"))
    return job


def clean_cover_letter(cover_letter: str | None) -> str | None:
    return validate_string_field(
        cover_letter, "Cover letter", min_length=0, max_length=10000, required=False
    ) or None


def submit(
    db: Session,
    applicant_id: str,
    job_id: str,
    cover_letter: str | None = None,
    resume_ref: str | None = None,
) -> Application:
    job = ensure_can_submit(db, applicant_id, job_id)
    cover_letter = clean_cover_letter(cover_letter)

    if not resume_ref:
        applicant = db.query(User).filter(User.id == applicant_id).first()
        resume_ref = applicant.resume if applicant else None

    application = Application(
        job_id=job.id,
        applicant_id=applicant_id,
        resume=resume_ref,
        cover_letter=cover_letter,
        status=ApplicationStatus.PENDING.value,
    )
    try:
        db.add(application)
        db.flush()
        db.query(Job).filter(Job.id == job.id).update(
            {Job.application_count: Job.application_count + 1},
            synchronize_session=False,
        )
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent submission for the same (job, applicant).
        db.rollback()
        raise ConflictError(get_error_message("already_applied"))
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    logger.info("Application %s submitted by %s for job %s", application.id, applicant_id, job.id)
    return application


def list_for_job(db: Session, job_id: str, requester_id: str, params: ListParams) -> Page:
    job_id = validate_object_id(job_id, "job ID")
    job = db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFoundError(get_error_message("job_not_found"))
    if job.owner_id != requester_id:
        raise AuthorizationError(get_error_message("job_forbidden"))

    page_num, limit = resolve_page(params.page, params.limit)
    q = db.query(Application).options(joinedload(Application.applicant)).filter(Application.job_id == job.id)
    q = status_filter(q, Application.status, params.status)
    page = paginate(q, resolve_sort(params.sort, APPLICATION_SORTS, "newest"), page_num, limit)

    rows = (
        db.query(Application.status, func.count(Application.id))
        .filter(Application.job_id == job.id)
        .group_by(Application.status)
        .all()
    )
    page.extra["statusCounts"] = status_buckets(rows, _statuses())
    return page


def list_for_applicant(db: Session, applicant_id: str, params: ListParams) -> Page:
    page_num, limit = resolve_page(params.page, params.limit)
    q = (
        db.query(Application)
        .options(joinedload(Application.job).joinedload(Job.owner))
        .filter(Application.applicant_id == applicant_id)
    )
    q = status_filter(q, Application.status, params.status)
    return paginate(q, resolve_sort(params.sort, APPLICATION_SORTS, "newest"), page_num, limit)


def list_for_recruiter(db: Session, recruiter_id: str, params: ListParams) -> Page:
    """Applications across every job the recruiter owns, with global status counts."""
    job_ids = [row[0] for row in db.query(Job.id).filter(Job.owner_id == recruiter_id).all()]

    page_num, limit = resolve_page(params.page, params.limit)
    q = (
        db.query(Application)
        .options(joinedload(Application.applicant), joinedload(Application.job).joinedload(Job.owner))
        .filter(Application.job_id.in_(job_ids))
    )
    q = status_filter(q, Application.status, params.status)
    page = paginate(q, resolve_sort(params.sort, APPLICATION_SORTS, "newest"), page_num, limit)

    rows = []
    if job_ids:
        rows = (
            db.query(Application.status, func.count(Application.id))
            .filter(Application.job_id.in_(job_ids))
            .group_by(Application.status)
            .all()
        )
    page.extra["statusCounts"] = status_buckets(rows, _statuses())
    return page


def get_by_id(db: Session, application_id: str, requester_id: str) -> Application:
    application = _get_application(
        db,
        application_id,
        joinedload(Application.applicant),
        joinedload(Application.job).joinedload(Job.owner),
    )
    is_applicant = application.applicant_id == requester_id
    is_job_owner = application.job is not None and application.job.owner_id == requester_id
    if not is_applicant and not is_job_owner:
        raise AuthorizationError(get_error_message("application_forbidden"))
    return application


def update_status(
    db: Session,
    application_id: str,
    requester_id: str,
    new_status: str | None,
    notes: str | None = None,
) -> Application:
    application_id = validate_object_id(application_id, "application ID")
    status = validate_application_status(new_status)
    notes = validate_string_field(notes, "Notes", min_length=0, max_length=10000, required=False)

    application = _get_application(db, application_id, joinedload(Application.job))
    if application.job is None or application.job.owner_id != requester_id:
        raise AuthorizationError(get_error_message("application_forbidden"))

    application.status = status.value
    if notes:
        application.notes = notes
    application.updated_at = utcnow()
    try:
        db.commit()
        db.refresh(application)
    except Exception:
        db.rollback()
        raise

    logger.info("Application %s moved to %s by %s", application.id, status.value, requester_id)
    return application


def withdraw(db: Session, application_id: str, requester_id: str) -> None:
    application = _get_application(db, application_id)
    if application.applicant_id != requester_id:
        raise AuthorizationError(get_error_message("application_forbidden"))
    if application.status != ApplicationStatus.PENDING.value:
        raise ConflictError(get_error_message("withdraw_not_pending"))

    job_id = application.job_id
    try:
        # Re-check the status in the DELETE itself so a concurrent review wins.
        deleted = (
            db.query(Application)
            .filter(
                Application.id == application.id,
                Application.status == ApplicationStatus.PENDING.value,
            )
            .delete(synchronize_session=False)
        )
        if not deleted:
            db.rollback()
            raise ConflictError(get_error_message("withdraw_not_pending"))
        db.query(Job).filter(Job.id == job_id, Job.application_count > 0).update(
            {Job.application_count: Job.application_count - 1},
            synchronize_session=False,
        )
        db.commit()
    except ConflictError:
        raise
    except Exception:
        db.rollback()
        raise

    logger.info("Application %s withdrawn by %s", application_id, requester_id)
