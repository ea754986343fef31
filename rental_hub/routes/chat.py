"""
chat.py
-------
Purpose:
    Real-time chat relay over a WebSocket at /ws.

    Frames are JSON objects {"event": <name>, "data": <payload>}:
    - addUser   (client -> server) data: user id; registers presence
    - sendMsg   (client -> server) data: {"to": user id, "message": payload}
    - receiveMsg (server -> client) data: the relayed message payload

    Relay is fire-and-forget: the sender never learns whether the recipient
    was online. Malformed and binary frames are logged and ignored.
"""

import asyncio
import contextlib
import uuid

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.requests import HTTPConnection

from rental_hub.infrastructure.observability.logging import get_logger
from rental_hub.models.api.chat_messages import (
    ADD_USER_EVENT,
    SEND_MSG_EVENT,
    ChatMessage,
    WsInbound,
    WsOutbound,
    normalize_user_id,
)
from rental_hub.realtime.presence import Connection, PresenceRegistry

router = APIRouter()
logger = get_logger(__name__)


def get_presence_registry(connection: HTTPConnection) -> PresenceRegistry:
    return connection.app.state.presence


async def _pump_outbox(websocket: WebSocket, connection: Connection) -> None:
    """Write relayed messages to the socket in arrival order."""
    while True:
        payload = await connection.outbox.get()
        try:
            await websocket.send_json(WsOutbound(data=payload).model_dump())
        except (WebSocketDisconnect, RuntimeError) as e:
            # Socket closed under us; the receive loop sees the disconnect too
            logger.debug("Outbox delivery stopped", error=str(e))
            return


async def _handle_frame(registry: PresenceRegistry, connection: Connection, raw: str) -> None:
    try:
        frame = WsInbound.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("Malformed socket frame ignored", error_count=e.error_count())
        return

    if frame.event == ADD_USER_EVENT:
        user_id = normalize_user_id(frame.data)
        if user_id is None:
            logger.warning("addUser without a user id ignored")
            return
        await registry.register(connection.connection_id, user_id)

    elif frame.event == SEND_MSG_EVENT:
        try:
            chat_message = ChatMessage.model_validate(frame.data)
        except ValidationError:
            logger.warning("sendMsg without a recipient ignored")
            return
        await registry.relay(connection.connection_id, chat_message.to, chat_message.message)

    else:
        logger.debug("Unknown socket event ignored", socket_event=frame.event)


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket, registry: PresenceRegistry = Depends(get_presence_registry)
):
    await websocket.accept()

    connection = Connection(connection_id=uuid.uuid4().hex)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    await registry.attach(connection)
    logger.info("Socket connected")

    sender = asyncio.create_task(_pump_outbox(websocket, connection))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            if message.get("text") is not None:
                await _handle_frame(registry, connection, message["text"])
            else:
                logger.warning("Binary socket frame ignored")
    except WebSocketDisconnect as e:
        logger.info("Socket disconnected", code=e.code)
    finally:
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender
        await registry.detach(connection.connection_id)
        structlog.contextvars.unbind_contextvars("connection_id")
