import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, status

from app.errors import AuthFailure
from app.middleware.auth import resolve_account
from app.models.account import Role
from app.service.context import ServiceContext, get_services
from app.service.live.lifecycle import SubmissionLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/live", tags=["live"])


async def _drain_client(websocket: WebSocket):
    # the view only listens; returns once the client goes away
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def _push_status(websocket: WebSocket, lifecycle: SubmissionLifecycle):
    updates = lifecycle.watch()
    while True:
        snapshot = await updates.get()
        await websocket.send_json(snapshot.model_dump(mode="json"))


@router.websocket("/submission")
async def submission_updates(websocket: WebSocket, services: ServiceContext = Depends(get_services)):
    """
    Status of the caller's application: sent once on connect, then again
    every time the submission is created or an evaluator writes a decision.
    """
    try:
        account = resolve_account(websocket, services, Role.DEVELOPER)
    except AuthFailure:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    lifecycle = SubmissionLifecycle(services.store, services.feed, account.id)
    await lifecycle.start()

    pusher = asyncio.create_task(_push_status(websocket, lifecycle))
    reader = asyncio.create_task(_drain_client(websocket))
    try:
        done, _ = await asyncio.wait({pusher, reader}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if task is pusher and task.exception() is not None:
                logger.info(f"Live view of {account.id} stopped: {task.exception()}")
    finally:
        pusher.cancel()
        reader.cancel()
        await lifecycle.close()
        logger.debug(f"Live view of {account.id} closed")
