from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base, new_object_id, utcnow
from .enums import ApplicationStatus


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "applicant_id", name="uq_applications_job_applicant"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    job_id = Column(String(24), ForeignKey("jobs.id"), nullable=False, index=True)
    applicant_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    resume = Column(String(500), nullable=True)
    cover_letter = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ApplicationStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    job = relationship("Job", back_populates="applications")
    applicant = relationship("User", back_populates="applications")
