import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from starlette.websockets import WebSocketDisconnect

from app.models.evaluation import Decision, EvaluationEvent
from app.models.status import SubmissionState
from app.models.submission import Submission
from app.service.live.feed import InMemoryChangeFeed, evaluation_channel
from app.service.live.lifecycle import DecisionCell, SubmissionLifecycle
from conftest import submission_files, submission_form

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def event(decision: Decision, feedback: str = "", at: datetime = T0) -> EvaluationEvent:
    return EvaluationEvent(
        submission_id="sub-1",
        evaluator_id="eval-1",
        decision=decision,
        feedback=feedback,
        updated_at=at,
    )


def make_submission(user_id: str) -> Submission:
    return Submission(
        user_id=user_id,
        full_name="Ada Lovelace",
        phone="1",
        location="London",
        email="ada@x.com",
        hobby="knitting",
        profile_image_url="https://storage.test/avatars/a.jpg",
        source_code_url="https://storage.test/source-code/a.zip",
    )


async def next_status(queue: asyncio.Queue):
    return await asyncio.wait_for(queue.get(), timeout=2)


# ── change feed ──────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_feed_delivers_only_to_matching_channel():
    feed = InMemoryChangeFeed()
    mine = await feed.subscribe("evaluations:a")
    other = await feed.subscribe("evaluations:b")

    await feed.publish("evaluations:a", {"n": 1})

    received = await asyncio.wait_for(mine.__aiter__().__anext__(), timeout=1)
    assert received == {"n": 1}
    assert other.queue.empty()


@pytest.mark.anyio
async def test_closed_subscription_is_dropped():
    feed = InMemoryChangeFeed()
    subscription = await feed.subscribe("evaluations:a")
    assert feed.subscriber_count("evaluations:a") == 1

    await subscription.close()
    assert feed.subscriber_count("evaluations:a") == 0
    assert [payload async for payload in subscription] == []


# ── decision cell ────────────────────────────────────────────────────────────
def test_cell_keeps_newest_row():
    cell = DecisionCell()
    assert cell.offer(event(Decision.ACCEPTED, "pushed", at=T0 + timedelta(seconds=5)))
    # initial read that raced the push and lost
    assert not cell.offer(event(Decision.UNSET, "", at=T0))
    assert cell.value.decision == Decision.ACCEPTED
    assert cell.value.feedback == "pushed"


def test_cell_never_returns_to_unset():
    cell = DecisionCell()
    cell.offer(event(Decision.REJECTED, "no", at=T0))
    cell.offer(event(Decision.UNSET, "more notes", at=T0 + timedelta(seconds=1)))
    assert cell.value.decision == Decision.REJECTED
    assert cell.value.feedback == "more notes"


def test_cell_notifies_on_change_only():
    seen = []
    cell = DecisionCell(on_change=seen.append)
    row = event(Decision.ACCEPTED, "yes")
    cell.offer(row)
    cell.offer(row)
    assert seen == [row]


# ── lifecycle ────────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_lifecycle_moves_from_nothing_to_decided(services, developer, evaluator):
    lifecycle = SubmissionLifecycle(services.store, services.feed, developer.id)
    await lifecycle.start()
    updates = lifecycle.watch()
    try:
        assert (await next_status(updates)).state == SubmissionState.NO_SUBMISSION

        submission = await services.store.insert_submission(make_submission(developer.id))
        pending = await next_status(updates)
        assert pending.state == SubmissionState.PENDING
        assert pending.submission_id == submission.id

        await services.store.upsert_evaluation(submission.id, evaluator.id, Decision.ACCEPTED, "Great work")
        decided = await next_status(updates)
        assert decided.state == SubmissionState.DECIDED
        assert decided.decision == Decision.ACCEPTED
        assert decided.headline == "Accepted — Welcome!"
        assert decided.feedback == "Great work"
    finally:
        await lifecycle.close()

    assert services.feed.subscriber_count(evaluation_channel(submission.id)) == 0


@pytest.mark.anyio
async def test_lifecycle_picks_up_existing_decision(services, developer, evaluator):
    submission = await services.store.insert_submission(make_submission(developer.id))
    await services.store.upsert_evaluation(submission.id, evaluator.id, Decision.REJECTED, "Not this time")

    lifecycle = SubmissionLifecycle(services.store, services.feed, developer.id)
    await lifecycle.start()
    try:
        status = lifecycle.status
        assert status.state == SubmissionState.DECIDED
        assert status.headline == "Rejected"
        assert status.feedback == "Not this time"

        # feedback edits still arrive live
        updates = lifecycle.watch()
        await next_status(updates)
        await services.store.upsert_evaluation(submission.id, evaluator.id, Decision.REJECTED, "Apply again in spring")
        assert (await next_status(updates)).feedback == "Apply again in spring"
    finally:
        await lifecycle.close()


@pytest.mark.anyio
async def test_attach_is_idempotent(services, developer):
    submission = await services.store.insert_submission(make_submission(developer.id))
    lifecycle = SubmissionLifecycle(services.store, services.feed, developer.id)
    await lifecycle.start()
    try:
        await lifecycle.attach(submission.id)
        assert services.feed.subscriber_count(evaluation_channel(submission.id)) == 1
    finally:
        await lifecycle.close()


# ── websocket ────────────────────────────────────────────────────────────────
def test_live_view_follows_new_submission_and_decision(client, developer_headers, evaluator_headers, mail_sender):
    with client.websocket_connect("/live/submission", headers=developer_headers) as ws:
        assert ws.receive_json()["state"] == "no_submission"

        response = client.post("/submission", data=submission_form(), files=submission_files(), headers=developer_headers)
        assert response.status_code == 201
        submission_id = response.json()["submission_id"]

        pending = ws.receive_json()
        assert pending["state"] == "pending"
        assert pending["submission_id"] == submission_id

        response = client.put(
            f"/evaluation/{submission_id}",
            json={"decision": "accepted", "feedback": "Great work"},
            headers=evaluator_headers,
        )
        assert response.status_code == 200

        decided = ws.receive_json()
        assert decided["state"] == "decided"
        assert decided["decision"] == "accepted"
        assert decided["headline"] == "Accepted — Welcome!"
        assert decided["feedback"] == "Great work"

    assert mail_sender.sent[0]["to"] == "ada@x.com"


def test_live_view_starts_from_stored_decision(client, developer_headers, evaluator_headers):
    response = client.post("/submission", data=submission_form(), files=submission_files(), headers=developer_headers)
    submission_id = response.json()["submission_id"]
    client.put(f"/evaluation/{submission_id}", json={"decision": "rejected", "feedback": "Sorry"}, headers=evaluator_headers)

    with client.websocket_connect("/live/submission", headers=developer_headers) as ws:
        status = ws.receive_json()
        assert status["state"] == "decided"
        assert status["headline"] == "Rejected"
        assert status["feedback"] == "Sorry"


def test_live_view_requires_developer(client, evaluator_headers):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/live/submission", headers=evaluator_headers):
            pass

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/live/submission"):
            pass
