import logging
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks

from app.errors import NotFound, UpstreamFailure, ValidationFailure
from app.models.account import Account
from app.models.evaluation import Decision, Evaluation
from app.models.submission import Submission
from app.service.context import ServiceContext

logger = logging.getLogger(__name__)


class ReviewWorkflow:
    def __init__(self, services: ServiceContext):
        self.services = services

    def list_submissions(self) -> List[Submission]:
        """All submissions, newest first."""
        return self.services.store.list_submissions()

    def open_review(self, submission_id: str) -> Tuple[Submission, Optional[Evaluation]]:
        submission = self.services.store.get_submission(submission_id)
        if submission is None:
            raise NotFound("Submission not found")
        return submission, self.services.store.get_evaluation(submission_id)

    async def record_decision(
        self,
        evaluator: Account,
        submission_id: str,
        decision: Decision,
        feedback: str,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Evaluation:
        """
        Store the evaluator's verdict, replacing any earlier one, then queue
        the applicant's email. The email runs after the response and its
        failure is only logged.
        """
        if decision == Decision.UNSET:
            raise ValidationFailure("Decision must be accepted or rejected")

        submission = self.services.store.get_submission(submission_id)
        if submission is None:
            raise NotFound("Submission not found")

        try:
            evaluation = await self.services.store.upsert_evaluation(
                submission_id=submission_id,
                evaluator_id=evaluator.id,
                decision=decision,
                feedback=feedback,
            )
        except Exception as e:
            logger.error(f"Saving decision for {submission_id} failed: {e}")
            raise UpstreamFailure("Error saving decision")

        notifier = self.services.notifier
        if background_tasks is not None:
            background_tasks.add_task(notifier.dispatch, submission, decision, feedback)
        else:
            await notifier.dispatch(submission, decision, feedback)
        return evaluation
