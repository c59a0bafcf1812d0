from .application import Application
from .enums import ApplicationStatus, JobLevel, JobStatus, Role
from .job import Job
from .user import User, UserToken

__all__ = [
    "Application",
    "ApplicationStatus",
    "Job",
    "JobLevel",
    "JobStatus",
    "Role",
    "User",
    "UserToken",
]
