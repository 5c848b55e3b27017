import logging
from typing import List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.models.account import Account
from app.models.evaluation import Decision, Evaluation, EvaluationEvent
from app.models.submission import Submission
from app.service.live.feed import ChangeFeed, evaluation_channel, owner_channel
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class PortalStore:
    """
    Relational store for profiles, submissions and evaluations. Every write
    is announced on the change feed once committed, so live views see it no
    matter which code path performed the write.
    """

    def __init__(self, engine: Engine, feed: ChangeFeed):
        self.engine = engine
        self.feed = feed

    # ── reads ────────────────────────────────────────────────────────────────
    def get_account(self, account_id: str) -> Optional[Account]:
        with Session(self.engine) as session:
            return session.get(Account, account_id)

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        with Session(self.engine) as session:
            return session.get(Submission, submission_id)

    def get_submission_for_owner(self, user_id: str) -> Optional[Submission]:
        with Session(self.engine) as session:
            return session.exec(select(Submission).where(Submission.user_id == user_id)).first()

    def list_submissions(self) -> List[Submission]:
        with Session(self.engine) as session:
            return list(session.exec(select(Submission).order_by(Submission.created_at.desc())).all())

    def get_evaluation(self, submission_id: str) -> Optional[Evaluation]:
        with Session(self.engine) as session:
            return session.get(Evaluation, submission_id)

    # ── writes ───────────────────────────────────────────────────────────────
    async def insert_submission(self, submission: Submission) -> Submission:
        with Session(self.engine) as session:
            session.add(submission)
            session.commit()
            session.refresh(submission)
        logger.info(f"Inserted submission {submission.id} for user {submission.user_id}")

        await self._announce(owner_channel(submission.user_id), {"submission_id": submission.id})
        return submission

    async def upsert_evaluation(
        self,
        submission_id: str,
        evaluator_id: str,
        decision: Decision,
        feedback: str,
    ) -> Evaluation:
        try:
            evaluation = self._write_evaluation(submission_id, evaluator_id, decision, feedback)
        except IntegrityError:
            # another writer created the row between our read and insert; overwrite it
            logger.info(f"Evaluation for {submission_id} was created concurrently, retrying as update")
            evaluation = self._write_evaluation(submission_id, evaluator_id, decision, feedback)
        logger.info(f"Stored evaluation for submission {submission_id}: {decision.value}")

        event = EvaluationEvent.from_row(evaluation)
        await self._announce(evaluation_channel(submission_id), event.model_dump(mode="json"))
        return evaluation

    def _load_evaluation(self, session: Session, submission_id: str) -> Optional[Evaluation]:
        return session.get(Evaluation, submission_id)

    def _write_evaluation(
        self,
        submission_id: str,
        evaluator_id: str,
        decision: Decision,
        feedback: str,
    ) -> Evaluation:
        with Session(self.engine) as session:
            evaluation = self._load_evaluation(session, submission_id)
            if evaluation is None:
                evaluation = Evaluation(
                    submission_id=submission_id,
                    evaluator_id=evaluator_id,
                    decision=decision,
                    feedback=feedback,
                )
            else:
                evaluation.evaluator_id = evaluator_id
                evaluation.decision = decision
                evaluation.feedback = feedback
                evaluation.updated_at = utcnow()
            session.add(evaluation)
            session.commit()
            session.refresh(evaluation)
            return evaluation

    async def _announce(self, channel: str, payload: dict):
        # the write is committed; a feed outage only leaves live views stale
        try:
            await self.feed.publish(channel, payload)
        except Exception as e:
            logger.error(f"Change feed publish on {channel} failed: {e}")
