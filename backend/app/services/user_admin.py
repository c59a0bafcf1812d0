import logging

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.enums import Role
from ..models.job import Job
from ..models.user import User, UserToken
from ..utils.error_handlers import AuthorizationError, NotFoundError, get_error_message
from ..utils.validation import validate_object_id
from .query_builder import ListParams, Page, paginate, resolve_page, resolve_sort, text_search

logger = logging.getLogger(__name__)

USER_SORTS = {
    "latest": (User.created_at.desc(), User.id.desc()),
    "oldest": (User.created_at.asc(), User.id.asc()),
    "a-z": (User.name.asc(), User.id.asc()),
    "z-a": (User.name.desc(), User.id.desc()),
}


def _list(db: Session, base_filter, params: ListParams) -> Page:
    page_num, limit = resolve_page(params.page, params.limit)
    q = db.query(User).filter(base_filter)
    q = text_search(q, params.search, User.name, User.email)
    return paginate(q, resolve_sort(params.sort, USER_SORTS, "latest"), page_num, limit)


def list_users(db: Session, params: ListParams) -> Page:
    """Everyone except admins."""
    return _list(db, User.role != Role.ADMIN.value, params)


def list_recruiters(db: Session, params: ListParams) -> Page:
    return _list(db, User.role == Role.RECRUITER.value, params)


def delete_user(db: Session, user_id: str) -> dict[str, int]:
    """
    Remove a non-admin user and everything hanging off them, in one transaction:
    a recruiter's jobs (with their applications), the user's own applications (with
    the affected job counters decremented) and their session tokens.
    """
    user_id = validate_object_id(user_id, "user ID")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(get_error_message("user_not_found"))
    if user.role == Role.ADMIN.value:
        raise AuthorizationError("Cannot delete admin users")

    removed = {"jobs": 0, "applications": 0}
    try:
        owned_job_ids = [row[0] for row in db.query(Job.id).filter(Job.owner_id == user.id).all()]
        if owned_job_ids:
            removed["applications"] += (
                db.query(Application)
                .filter(Application.job_id.in_(owned_job_ids))
                .delete(synchronize_session=False)
            )
            removed["jobs"] = (
                db.query(Job)
                .filter(Job.id.in_(owned_job_ids))
                .delete(synchronize_session=False)
            )

        per_job = (
            db.query(Application.job_id, func.count(Application.id))
            .filter(Application.applicant_id == user.id)
            .group_by(Application.job_id)
            .all()
        )
        for job_id, n in per_job:
            db.query(Job).filter(Job.id == job_id).update(
                {
                    Job.application_count: case(
                        (Job.application_count > n, Job.application_count - n),
                        else_=0,
                    )
                },
                synchronize_session=False,
            )
        removed["applications"] += (
            db.query(Application)
            .filter(Application.applicant_id == user.id)
            .delete(synchronize_session=False)
        )

        db.query(UserToken).filter(UserToken.user_id == user.id).delete(synchronize_session=False)
        db.query(User).filter(User.id == user.id).delete(synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "User %s deleted (%d jobs, %d applications removed)",
        user_id, removed["jobs"], removed["applications"],
    )
    return removed
