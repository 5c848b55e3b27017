from enum import Enum as PyEnum
from typing import Optional
from pydantic import BaseModel

from app.models.evaluation import Decision


class SubmissionState(str, PyEnum):
    NO_SUBMISSION = "no_submission"
    PENDING = "pending"
    DECIDED = "decided"


HEADLINES = {
    SubmissionState.NO_SUBMISSION: "No submission yet",
    SubmissionState.PENDING: "Waiting for evaluator review…",
    Decision.ACCEPTED: "Accepted — Welcome!",
    Decision.REJECTED: "Rejected",
}


class SubmissionStatus(BaseModel):
    """What the developer's status box shows."""
    state: SubmissionState
    submission_id: Optional[str] = None
    decision: Decision = Decision.UNSET
    feedback: Optional[str] = None
    headline: str
