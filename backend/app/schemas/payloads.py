"""
Outward JSON shapes. Keys are camelCase to match what the SPA consumes; passwords
and session tokens never leave through here.
"""
from datetime import datetime

from ..models.application import Application
from ..models.job import Job
from ..models.user import User


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else value


def _salary(value):
    if value is None:
        return None
    return int(value) if float(value).is_integer() else float(value)


def user_to_public(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "profileImageUrl": user.profile_image,
        "resumeUrl": user.resume,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def user_summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profileImageUrl": user.profile_image,
    }


def job_to_public(job: Job, *, application_count: int | None = None, include_owner: bool = True) -> dict:
    payload = {
        "id": job.id,
        "title": job.title,
        "description": job.description,
        "location": job.location,
        "category": job.category,
        "level": job.level,
        "salary": _salary(job.salary),
        "requirements": list(job.requirements or []),
        "responsibilities": list(job.responsibilities or []),
        "status": job.status,
        "applicationDeadline": _iso(job.application_deadline),
        "applicationCount": int(job.application_count or 0) if application_count is None else int(application_count),
        "ownerId": job.owner_id,
        "createdAt": _iso(job.created_at),
        "updatedAt": _iso(job.updated_at),
    }
    if include_owner:
        payload["owner"] = user_summary(job.owner)
    return payload


def job_brief(job: Job | None) -> dict | None:
    if job is None:
        return None
    return {
        "id": job.id,
        "title": job.title,
        "location": job.location,
        "salary": _salary(job.salary),
        "status": job.status,
        "owner": {
            "id": job.owner.id,
            "name": job.owner.name,
            "profileImageUrl": job.owner.profile_image,
        } if job.owner else None,
    }


def application_to_public(application: Application, *, job: str = "brief", applicant: bool = True) -> dict:
    """`job` is "brief", "full" or "id" (only jobId is emitted)."""
    payload = {
        "id": application.id,
        "jobId": application.job_id,
        "applicantId": application.applicant_id,
        "resume": application.resume,
        "coverLetter": application.cover_letter,
        "status": application.status,
        "notes": application.notes,
        "createdAt": _iso(application.created_at),
        "updatedAt": _iso(application.updated_at),
    }
    if job == "full":
        payload["job"] = job_to_public(application.job) if application.job else None
    elif job == "brief":
        payload["job"] = job_brief(application.job)
    if applicant:
        payload["applicant"] = user_summary(application.applicant)
    return payload
