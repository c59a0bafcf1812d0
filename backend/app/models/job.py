from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base, new_object_id, utcnow
from .enums import JobLevel, JobStatus


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(24), primary_key=True, default=new_object_id)
    owner_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)  # rich text (HTML) from the editor
    location = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    level = Column(String(30), nullable=False, default=JobLevel.BEGINNER.value)
    salary = Column(Float, nullable=False)
    requirements = Column(JSON, nullable=False, default=list)  # ordered list of strings
    responsibilities = Column(JSON, nullable=False, default=list)  # ordered list of strings
    status = Column(String(20), nullable=False, default=JobStatus.ACTIVE.value, index=True)
    application_deadline = Column(DateTime(timezone=True), nullable=True)
    # Denormalized count of applications; see services.count_sync for the repair path.
    application_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="jobs")
    applications = relationship("Application", back_populates="job", passive_deletes=True)
