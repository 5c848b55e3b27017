from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from pydantic import BaseModel, field_validator
from sqlalchemy import Column, DateTime, Enum, Text
from sqlmodel import Field, SQLModel

from app.utils.clock import as_utc, utcnow


class Decision(str, PyEnum):
    UNSET = "unset"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Evaluation(SQLModel, table=True):
    """
    The evaluator's verdict on a submission. At most one per submission,
    replaced wholesale on every write.
    """
    __tablename__ = "evaluations"
    submission_id: str = Field(foreign_key="submissions.id", primary_key=True)
    evaluator_id: str = Field(foreign_key="profiles.id", nullable=False)
    decision: Decision = Field(
        sa_column=Column(Enum(Decision), default=Decision.UNSET, nullable=False)
    )
    feedback: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), nullable=False)


class EvaluationEvent(BaseModel):
    """
    Full evaluation row as delivered by the change feed and by the initial
    read of the developer's live view.
    """
    submission_id: str
    evaluator_id: str
    decision: Decision = Decision.UNSET
    feedback: str = ""
    updated_at: datetime

    @field_validator("updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def from_row(cls, evaluation: Evaluation) -> "EvaluationEvent":
        return cls(
            submission_id=evaluation.submission_id,
            evaluator_id=evaluation.evaluator_id,
            decision=evaluation.decision,
            feedback=evaluation.feedback or "",
            updated_at=evaluation.updated_at,
        )


class EvaluationRequest(BaseModel):
    decision: Decision
    feedback: str = ""


class EvaluationResponse(BaseModel):
    message: str
    evaluation: Optional[EvaluationEvent] = None
