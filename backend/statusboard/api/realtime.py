"""WebSocket relay from an organization's Redis channel to dashboard viewers."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from statusboard.db.postgres import get_session_factory
from statusboard.errors import UnauthorizedError, TenantNotFoundError
from statusboard.security import get_caller_from_token
from statusboard.services.notifier import RedisTransport, channel_for, get_transport
from statusboard.services.scoper import resolve_caller_organization

router = APIRouter()
logger = logging.getLogger(__name__)

CLOSE_UNAUTHORIZED = 4401
CLOSE_NOT_FOUND = 4404
CLOSE_SUBSCRIPTION_FAILED = 1011


async def forward_events(websocket: WebSocket, transport: RedisTransport, channel: str) -> None:
    async for envelope in transport.subscribe(channel):
        await websocket.send_json(envelope)


async def drain_client(websocket: WebSocket) -> None:
    # Client messages are ignored; receiving only detects disconnects
    while True:
        await websocket.receive_text()


@router.websocket("/ws")
async def realtime_websocket(
    websocket: WebSocket,
    token: str | None = None,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    transport: RedisTransport = Depends(get_transport),
):
    """Stream incident events for the caller's organization."""
    await websocket.accept()

    caller = get_caller_from_token(token)
    try:
        async with session_factory() as db:
            organization = await resolve_caller_organization(db, caller)
    except UnauthorizedError:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return
    except TenantNotFoundError:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return

    channel = channel_for(organization.id)
    listener = asyncio.create_task(forward_events(websocket, transport, channel))
    receiver = asyncio.create_task(drain_client(websocket))
    logger.info("Viewer %s subscribed to %s", caller.caller_id, channel)

    try:
        done, _ = await asyncio.wait({listener, receiver}, return_when=asyncio.FIRST_COMPLETED)

        if listener in done and isinstance(listener.exception(), WebSocketDisconnect):
            logger.info("Viewer %s left %s", caller.caller_id, channel)
        elif listener in done:
            exc = listener.exception()
            if exc is not None:
                logger.error("Subscription to %s failed", channel, exc_info=exc)
            else:
                logger.warning("Subscription to %s ended", channel)
            await websocket.close(code=CLOSE_SUBSCRIPTION_FAILED)
        else:
            exc = receiver.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("Viewer %s connection failed", caller.caller_id, exc_info=exc)
            else:
                logger.info("Viewer %s left %s", caller.caller_id, channel)
    finally:
        for task in (listener, receiver):
            task.cancel()
        await asyncio.gather(listener, receiver, return_exceptions=True)
