from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from ..database import Base, new_object_id, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # stored lowercased
    password = Column(String(255), nullable=False)  # store hashed password
    role = Column(String(20), nullable=False, index=True)  # jobseeker / recruiter / admin
    profile_image = Column(String(500), nullable=True)
    resume = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    jobs = relationship("Job", back_populates="owner")
    applications = relationship("Application", back_populates="applicant")
    tokens = relationship("UserToken", back_populates="user", cascade="all, delete-orphan")


class UserToken(Base):
    """A session credential currently accepted for its user."""
    __tablename__ = "user_tokens"

    id = Column(String(24), primary_key=True, default=new_object_id)
    user_id = Column(String(24), ForeignKey("users.id"), nullable=False, index=True)
    token = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="tokens")
