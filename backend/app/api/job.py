import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.payloads import job_to_public
from ..services import job_catalog
from ..services.query_builder import ListParams
from ..utils.roles import recruiter_only
from .params import job_list_params, list_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


class JobPayload(BaseModel):
    """Create and update body. On update only the keys sent are applied."""
    model_config = ConfigDict(populate_by_name=True)

    title: str | None = None
    description: str | None = None
    location: str | None = None
    category: str | None = None
    level: str | None = None
    salary: float | None = None
    requirements: list[str] | None = None
    responsibilities: list[str] | None = None
    status: str | None = None
    application_deadline: str | None = Field(default=None, alias="applicationDeadline")


class JobStatusUpdate(BaseModel):
    status: str | None = None


@router.get("")
def list_jobs(params: ListParams = Depends(job_list_params), db: Session = Depends(get_db)):
    page = job_catalog.list_jobs(db, params)
    return page.envelope("jobs", job_to_public)


@router.post("", status_code=201)
def create_job(
    payload: JobPayload,
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    job = job_catalog.create_job(db, user.id, payload.model_dump())
    return {"success": True, "job": job_to_public(job)}


# Recruiter routes are declared before /{job_id} so "recruiter" is never taken for an id.
@router.get("/recruiter/jobs")
def get_recruiter_jobs(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    page = job_catalog.get_owner_jobs(db, user.id, params)
    return page.envelope(
        "jobs",
        lambda pair: job_to_public(pair[0], application_count=pair[1], include_owner=False),
    )


@router.get("/recruiter/stats")
def get_recruiter_stats(db: Session = Depends(get_db), user: User = Depends(recruiter_only)):
    return {"success": True, **job_catalog.get_job_stats(db, user.id)}


@router.get("/{job_id}")
def get_job(job_id: str, db: Session = Depends(get_db)):
    job = job_catalog.get_job(db, job_id)
    return {"success": True, "job": job_to_public(job)}


@router.put("/{job_id}")
def update_job(
    job_id: str,
    payload: JobPayload,
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    job = job_catalog.update_job(db, job_id, user.id, payload.model_dump(exclude_unset=True))
    return {"success": True, "job": job_to_public(job)}


@router.delete("/{job_id}")
def delete_job(
    job_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    removed = job_catalog.delete_job(db, job_id, user.id)
    return {
        "success": True,
        "message": "Job deleted successfully",
        "deletedApplications": removed,
    }


@router.patch("/{job_id}/status")
def change_job_status(
    job_id: str,
    payload: JobStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    job = job_catalog.change_status(db, job_id, user.id, payload.status)
    return {"success": True, "job": job_to_public(job)}
