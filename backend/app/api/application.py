import logging
from functools import partial

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.payloads import application_to_public
from ..services import application_workflow
from ..services.object_storage import RESUME, has_file, store_upload
from ..services.query_builder import ListParams
from ..utils.dependencies import get_current_user
from ..utils.roles import jobseeker_only, recruiter_only
from ..utils.validation import validate_object_id, validate_string_field
from .params import list_params

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


class ApplicationStatusUpdate(BaseModel):
    status: str | None = None
    notes: str | None = None


@router.post("", status_code=201)
async def submit_application(
    jobId: str = Form(...),
    coverLetter: str | None = Form(default=None),
    resumeUrl: str | None = Form(default=None),
    resume: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(jobseeker_only),
):
    job_id = validate_object_id(jobId, "job ID")
    # Reject bad input and closed/duplicate submissions before spending time on the upload.
    cover_letter = application_workflow.clean_cover_letter(coverLetter)
    application_workflow.ensure_can_submit(db, user.id, job_id)

    if has_file(resume):
        resume_ref = await store_upload(resume, RESUME, user.id)
    else:
        resume_ref = validate_string_field(resumeUrl, "Resume URL", min_length=0, max_length=500, required=False) or None

    application = application_workflow.submit(db, user.id, job_id, cover_letter, resume_ref)
    return {
        "success": True,
        "message": "Application submitted successfully",
        "application": application_to_public(application, job="id", applicant=False),
    }


@router.get("/user")
def get_user_applications(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    page = application_workflow.list_for_applicant(db, user.id, params)
    return page.envelope("applications", partial(application_to_public, job="brief", applicant=False))


@router.get("/recruiter")
def get_recruiter_applications(
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    page = application_workflow.list_for_recruiter(db, user.id, params)
    return page.envelope("applications", partial(application_to_public, job="brief", applicant=True))


@router.get("/job/{job_id}")
def get_job_applications(
    job_id: str,
    params: ListParams = Depends(list_params),
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    page = application_workflow.list_for_job(db, job_id, user.id, params)
    return page.envelope("applications", partial(application_to_public, job="id", applicant=True))


@router.get("/{application_id}")
def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    application = application_workflow.get_by_id(db, application_id, user.id)
    return {"success": True, "application": application_to_public(application, job="full")}


@router.patch("/{application_id}/status")
def update_application_status(
    application_id: str,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(recruiter_only),
):
    application = application_workflow.update_status(db, application_id, user.id, payload.status, payload.notes)
    return {
        "success": True,
        "message": f"Application status updated to {application.status}",
        "application": application_to_public(application, job="id"),
    }


@router.delete("/{application_id}")
def withdraw_application(
    application_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    application_workflow.withdraw(db, application_id, user.id)
    return {"success": True, "message": "Application withdrawn successfully"}
