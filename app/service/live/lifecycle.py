import asyncio
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from app.models.evaluation import Decision, EvaluationEvent
from app.models.status import HEADLINES, SubmissionState, SubmissionStatus
from app.service.db.store import PortalStore
from app.service.live.feed import ChangeFeed, Subscription, evaluation_channel, owner_channel

logger = logging.getLogger(__name__)


def describe_status(submission_id: Optional[str], event: Optional[EvaluationEvent]) -> SubmissionStatus:
    if submission_id is None:
        return SubmissionStatus(
            state=SubmissionState.NO_SUBMISSION,
            headline=HEADLINES[SubmissionState.NO_SUBMISSION],
        )

    if event is None or event.decision == Decision.UNSET:
        return SubmissionStatus(
            state=SubmissionState.PENDING,
            submission_id=submission_id,
            feedback=event.feedback if event else None,
            headline=HEADLINES[SubmissionState.PENDING],
        )

    return SubmissionStatus(
        state=SubmissionState.DECIDED,
        submission_id=submission_id,
        decision=event.decision,
        feedback=event.feedback,
        headline=HEADLINES[event.decision],
    )


def read_status(store: PortalStore, owner_id: str) -> SubmissionStatus:
    """One-shot status for pages rendered without the live channel."""
    submission = store.get_submission_for_owner(owner_id)
    if submission is None:
        return describe_status(None, None)
    evaluation = store.get_evaluation(submission.id)
    return describe_status(submission.id, EvaluationEvent.from_row(evaluation) if evaluation else None)


class DecisionCell:
    """
    Latest evaluation known for one submission.

    Both the initial read and the change feed offer rows here; the cell keeps
    whichever is newest, so a slow read can never undo a pushed decision.
    """

    def __init__(self, on_change: Optional[Callable[[EvaluationEvent], None]] = None):
        self._value: Optional[EvaluationEvent] = None
        self._on_change = on_change

    @property
    def value(self) -> Optional[EvaluationEvent]:
        return self._value

    def offer(self, event: EvaluationEvent) -> bool:
        current = self._value
        if current is not None:
            if event.updated_at < current.updated_at:
                return False
            # a decided submission never goes back to pending
            if event.decision == Decision.UNSET and current.decision != Decision.UNSET:
                event = event.model_copy(update={"decision": current.decision})
            if event == current:
                return False

        self._value = event
        if self._on_change:
            self._on_change(event)
        return True


class SubmissionLifecycle:
    """
    Live status of one developer's application:
    NO_SUBMISSION -> PENDING -> DECIDED.

    ``start`` discovers a submission that already exists; the owner channel
    delivers one created while the view is open. Both end up in ``attach``.
    """

    def __init__(self, store: PortalStore, feed: ChangeFeed, owner_id: str):
        self.store = store
        self.feed = feed
        self.owner_id = owner_id
        self.submission_id: Optional[str] = None
        self.cell = DecisionCell(on_change=self._on_decision)

        self._subscriptions: List[Subscription] = []
        self._tasks: List[asyncio.Task] = []
        self._watchers: List[asyncio.Queue] = []
        self._last_status: Optional[SubmissionStatus] = None

    @property
    def status(self) -> SubmissionStatus:
        return describe_status(self.submission_id, self.cell.value)

    def watch(self) -> asyncio.Queue:
        """Queue receiving the current status, then every distinct change."""
        queue: asyncio.Queue = asyncio.Queue()
        self._last_status = self.status
        queue.put_nowait(self._last_status)
        self._watchers.append(queue)
        return queue

    async def start(self):
        subscription = await self.feed.subscribe(owner_channel(self.owner_id))
        self._subscriptions.append(subscription)
        self._tasks.append(asyncio.create_task(self._follow_submissions(subscription)))

        existing = self.store.get_submission_for_owner(self.owner_id)
        if existing:
            await self.attach(existing.id)
        else:
            self._publish()

    async def attach(self, submission_id: str):
        if self.submission_id == submission_id:
            return
        if self.submission_id is not None:
            logger.warning(f"Owner {self.owner_id} switched live view from {self.submission_id} to {submission_id}")

        self.submission_id = submission_id
        self.cell = DecisionCell(on_change=self._on_decision)

        # subscribe before reading so no write falls between the two
        subscription = await self.feed.subscribe(evaluation_channel(submission_id))
        self._subscriptions.append(subscription)
        self._tasks.append(asyncio.create_task(self._follow_evaluations(subscription, submission_id)))
        logger.info(f"Live view of {self.owner_id} attached to submission {submission_id}")

        existing = self.store.get_evaluation(submission_id)
        if existing:
            self.cell.offer(EvaluationEvent.from_row(existing))
        self._publish()

    async def close(self):
        for task in self._tasks:
            task.cancel()
        for subscription in self._subscriptions:
            await subscription.close()
        self._tasks.clear()
        self._subscriptions.clear()
        self._watchers.clear()

    # ── producers ────────────────────────────────────────────────────────────
    async def _follow_submissions(self, subscription: Subscription):
        async for payload in subscription:
            submission_id = payload.get("submission_id")
            if submission_id:
                await self.attach(submission_id)

    async def _follow_evaluations(self, subscription: Subscription, submission_id: str):
        async for payload in subscription:
            if submission_id != self.submission_id:
                return
            try:
                event = EvaluationEvent.model_validate(payload)
            except ValidationError as e:
                logger.error(f"Ignoring malformed evaluation event for {submission_id}: {e}")
                continue
            self.cell.offer(event)

    def _on_decision(self, event: EvaluationEvent):
        self._publish()

    def _publish(self):
        status = self.status
        if status == self._last_status:
            return
        self._last_status = status
        for queue in self._watchers:
            queue.put_nowait(status)
