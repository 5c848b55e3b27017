from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel
import uuid

from app.utils.clock import utcnow


class Submission(SQLModel, table=True):
    """
    One developer's application. Written once by the submission writer and
    never updated afterwards.
    """
    __tablename__ = "submissions"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    # one application per developer, see the writer's duplicate check
    user_id: str = Field(foreign_key="profiles.id", unique=True, index=True, nullable=False)
    full_name: str = Field(nullable=False)
    phone: str = Field(nullable=False)
    location: str = Field(nullable=False)
    email: str = Field(nullable=False)
    hobby: str = Field(nullable=False)
    profile_image_url: str = Field(nullable=False)
    source_code_url: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False, index=True)


class SubmissionForm(BaseModel):
    """Text fields of the developer form."""
    full_name: str
    phone: str
    location: str
    email: str
    hobby: str


class SubmissionSummary(BaseModel):
    id: str
    full_name: str
    email: str
    profile_image_url: Optional[str] = None
    created_at: datetime


class SubmissionDetail(BaseModel):
    id: str
    user_id: str
    full_name: str
    phone: str
    location: str
    email: str
    hobby: str
    profile_image_url: str
    source_code_url: str
    created_at: datetime

    @classmethod
    def from_row(cls, submission: Submission) -> "SubmissionDetail":
        return cls(
            id=submission.id,
            user_id=submission.user_id,
            full_name=submission.full_name,
            phone=submission.phone,
            location=submission.location,
            email=submission.email,
            hobby=submission.hobby,
            profile_image_url=submission.profile_image_url,
            source_code_url=submission.source_code_url,
            created_at=submission.created_at,
        )
