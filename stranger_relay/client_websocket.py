"""
WebSocket handler for chat clients
"""
import asyncio
import json
import logging
import uuid
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from stranger_relay.delivery import Outboxes, pump_outbox
from stranger_relay.models import CONNECTED, Envelope, OutboundEvent
from stranger_relay.session import SessionManager, UnknownEventError

logger = logging.getLogger(__name__)


def origin_allowed(origin: Optional[str], allowed_origin: str) -> bool:
    # Non-browser clients send no Origin header
    if origin is None or allowed_origin == "*":
        return True
    return origin.rstrip("/") == allowed_origin.rstrip("/")


async def websocket_chat_client(websocket: WebSocket, session: SessionManager, outboxes: Outboxes,
                                allowed_origin: str = "*"):
    """Handle one chat client's WebSocket from accept to teardown"""
    origin = websocket.headers.get("origin")
    if not origin_allowed(origin, allowed_origin):
        logger.warning(f"Rejecting WebSocket from disallowed origin '{origin}'.")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    await websocket.accept()
    connection_id = uuid.uuid4().hex
    client = websocket.client
    client_endpoint = f"{client.host}:{client.port}" if client else "unknown"
    logger.info(f"Client '{connection_id}' connecting from WebSocket endpoint: {client_endpoint}")

    session.connect(connection_id)
    queue = outboxes.open(connection_id)
    writer = asyncio.create_task(pump_outbox(websocket, connection_id, queue))
    outboxes.deliver([OutboundEvent(connection_id, CONNECTED, {"id": connection_id})])

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
            raw_data = message.get("text")
            if raw_data is None:
                logger.warning(f"Client '{connection_id}' sent a binary frame, dropping it.")
                continue
            try:
                envelope = Envelope.model_validate(json.loads(raw_data))
                events = session.handle_event(connection_id, envelope.event, envelope.data)
            except json.JSONDecodeError:
                logger.warning(f"Client '{connection_id}' sent non-JSON frame, dropping it.")
                continue
            except UnknownEventError as e:
                logger.warning(f"Client '{connection_id}' sent unhandled event '{e.event}', dropping it.")
                continue
            except ValidationError as e:
                logger.warning(f"Client '{connection_id}' sent malformed payload, dropping it: {e.error_count()} error(s).")
                continue
            outboxes.deliver(events)

    except WebSocketDisconnect:
        logger.info(f"Client '{connection_id}' disconnected from WebSocket endpoint: {client_endpoint}.")
    except Exception:
        logger.exception(f"Error with client '{connection_id}' WebSocket.")
    finally:
        outboxes.deliver(session.disconnect(connection_id))
        outboxes.close(connection_id)
        await writer
