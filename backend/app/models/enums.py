import enum


class Role(str, enum.Enum):
    JOBSEEKER = "jobseeker"
    RECRUITER = "recruiter"
    ADMIN = "admin"


class JobStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    DRAFT = "draft"


class JobLevel(str, enum.Enum):
    BEGINNER = "Beginner Level"
    INTERMEDIATE = "Intermediate Level"
    SENIOR = "Senior Level"


class ApplicationStatus(str, enum.Enum):
    """
    Flat status set. Recruiters may move an application to any status at any time;
    the only guard is that applicants can withdraw while it is still PENDING.
    """
    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    REJECTED = "rejected"
    HIRED = "hired"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
