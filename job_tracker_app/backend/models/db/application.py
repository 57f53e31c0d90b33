import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON, ForeignKey
from .database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Application(Base):
    __tablename__ = "job_applications"

    id = Column(String(32), primary_key=True, default=_new_id)
    company_name = Column(String, nullable=False, index=True)
    position = Column(String, nullable=False, index=True)
    status = Column(String(16), nullable=False, default="wishlist")
    applied_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    job_type = Column(String(16), nullable=True)
    location = Column(String, nullable=True)
    salary = Column(String, nullable=True)
    job_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    interview_stages = Column(JSON, nullable=False, default=list)

    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
