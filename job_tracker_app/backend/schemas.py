from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApplicationStatus(str, Enum):
    WISHLIST = "wishlist"
    APPLIED = "applied"
    INTERVIEW = "interview"
    OFFERED = "offered"
    REJECTED = "rejected"


class JobType(str, Enum):
    REMOTE = "remote"
    HYBRID = "hybrid"
    ONSITE = "onsite"


# Board column order and display labels
STATUS_LABELS = {
    ApplicationStatus.WISHLIST: "Wishlist",
    ApplicationStatus.APPLIED: "Applied",
    ApplicationStatus.INTERVIEW: "Interview",
    ApplicationStatus.OFFERED: "Offered",
    ApplicationStatus.REJECTED: "Rejected",
}

JOB_TYPE_LABELS = {
    JobType.REMOTE: "Remote",
    JobType.HYBRID: "Hybrid",
    JobType.ONSITE: "On-site",
}

ALL_FILTER = "all"


def _clean_tags(tags: List[str]) -> List[str]:
    cleaned = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class CamelModel(BaseModel):
    """Documents travel with camelCase keys (``companyName``, ``appliedDate``)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Token Schemas
class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[str] = None
    jti: Optional[str] = None


class FederatedSignIn(BaseModel):
    id_token: str


# User Schemas
class UserBase(BaseModel):
    email: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("Invalid email address")
        return v


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    display_name: Optional[str] = None


class User(UserBase):
    id: str
    display_name: Optional[str] = None
    provider: str
    is_active: bool

    class Config:
        from_attributes = True


# Application Tracker Schemas
class InterviewStage(CamelModel):
    stage: str
    date: str
    notes: Optional[str] = None

    @field_validator('stage', 'date')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("cannot be empty")
        return v.strip()


class ApplicationBase(CamelModel):
    company_name: str
    position: str
    status: ApplicationStatus = ApplicationStatus.WISHLIST
    applied_date: date = Field(default_factory=date.today)
    job_type: Optional[JobType] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_url: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    interview_stages: List[InterviewStage] = Field(default_factory=list)

    @field_validator('company_name', 'position')
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("cannot be empty")
        return v.strip()

    @field_validator('tags')
    @classmethod
    def unique_tags(cls, v):
        return _clean_tags(v)


class ApplicationCreate(ApplicationBase):
    model_config = ConfigDict(extra="forbid")


class ApplicationUpdate(CamelModel):
    """Partial update. ``id``, ``userId`` and ``createdAt`` are never writable."""
    model_config = ConfigDict(extra="forbid")

    company_name: Optional[str] = None
    position: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    applied_date: Optional[date] = None
    job_type: Optional[JobType] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    job_url: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    interview_stages: Optional[List[InterviewStage]] = None

    @field_validator('company_name', 'position')
    @classmethod
    def not_blank(cls, v):
        if v is None or not v.strip():
            raise ValueError("cannot be empty")
        return v.strip()

    @field_validator('status', 'applied_date', 'tags', 'interview_stages')
    @classmethod
    def not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @field_validator('tags')
    @classmethod
    def unique_tags(cls, v):
        return _clean_tags(v)


class JobApplication(ApplicationBase):
    """The in-memory record shape. Frozen: edits build a new value."""
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    created_at: datetime


class TagRequest(BaseModel):
    tag: str


# Board Schemas
class BoardColumn(CamelModel):
    status: ApplicationStatus
    label: str
    count: int
    applications: List[JobApplication]


class Board(CamelModel):
    columns: List[BoardColumn]


class GestureResult(CamelModel):
    outcome: str
    application_id: Optional[str] = None
    status: Optional[ApplicationStatus] = None


# Analytics Schemas
class MonthlyCount(CamelModel):
    month: int
    year: int
    label: str
    count: int


class ChartPoint(CamelModel):
    name: str
    value: int


class AnalyticsSummary(CamelModel):
    total: int
    status_counts: Dict[str, int]
    interview_rate: str
    offer_rate: str
    monthly: List[MonthlyCount]
    job_types: Dict[str, int]
    status_chart: List[ChartPoint]
    job_type_chart: List[ChartPoint]
