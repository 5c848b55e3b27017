# Import all models to ensure SQLAlchemy can resolve relationships
from .account import Account, AccessToken, Role
from .submission import Submission
from .evaluation import Decision, Evaluation, EvaluationEvent
from .status import SubmissionState, SubmissionStatus

# Export all models
__all__ = [
    "Account",
    "AccessToken",
    "Role",
    "Submission",
    "Decision",
    "Evaluation",
    "EvaluationEvent",
    "SubmissionState",
    "SubmissionStatus",
]
