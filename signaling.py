from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
import asyncio
import json
import logging

from connection_registry import CLOSE_SENTINEL, Connection
from exceptions import InvalidMessageError, UnknownConnectionError
from models.schemas import InboundEvent, OutboundEvent, SignalMessage
from negotiation import RouteOutcome

logger = logging.getLogger(__name__)
router = APIRouter()

ROUTED_EVENTS = {
    InboundEvent.OFFER.value,
    InboundEvent.ANSWER.value,
    InboundEvent.ICE_CANDIDATE.value,
}


def _room_id_from(data) -> str:
    if isinstance(data, dict):
        data = data.get("roomID")
    if not isinstance(data, str) or not data:
        raise InvalidMessageError("join-room requires a non-empty room id")
    return data


async def _pump_outbox(websocket: WebSocket, connection: Connection):
    """Send queued events to the client in the order they were queued"""
    try:
        while True:
            item = await connection.outbox.get()
            if item is CLOSE_SENTINEL or connection.closed:
                break
            await websocket.send_text(json.dumps(item))
    except Exception as e:
        logger.error(f"Error sending to connection {connection.connection_id}: {e}", exc_info=True)
    finally:
        connection.close()

    # Ends the reader too, so the normal disconnect path cleans up
    try:
        await websocket.close()
    except (RuntimeError, WebSocketDisconnect):
        # Already closed by the other side
        pass


def _frame_text(message) -> str:
    if message.get("text") is not None:
        return message["text"]
    try:
        return (message.get("bytes") or b"").decode("utf-8")
    except UnicodeDecodeError:
        raise InvalidMessageError("Binary frames must be UTF-8 encoded JSON")


async def handle_frame(relay, settings, connection: Connection, raw: str):
    try:
        message = SignalMessage.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError):
        connection.deliver(OutboundEvent.ERROR.value, {"message": "Malformed frame"})
        return

    connection_id = connection.connection_id
    try:
        if message.event == InboundEvent.JOIN_ROOM.value:
            await relay.join(connection_id, _room_id_from(message.data))
        elif message.event == InboundEvent.LEAVE_ROOM.value:
            await relay.leave(connection_id)
        elif message.event in ROUTED_EVENTS:
            outcome = relay.route(message.event, connection_id, message.data)
            if outcome is RouteOutcome.TARGET_UNREACHABLE and settings.report_unreachable:
                connection.deliver(OutboundEvent.TARGET_UNREACHABLE.value, {
                    "target": message.data.get("target"),
                    "event": message.event,
                })
        else:
            connection.deliver(OutboundEvent.ERROR.value, {"message": f"Unknown event '{message.event}'"})
    except InvalidMessageError as e:
        logger.debug(f"Invalid message from {connection_id}: {e}")
        connection.deliver(OutboundEvent.ERROR.value, {"message": str(e)})
    except UnknownConnectionError as e:
        logger.warning(f"Ignoring '{message.event}': {e}")


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket):
    relay = websocket.app.state.relay
    settings = websocket.app.state.settings

    await websocket.accept()
    connection = relay.connect()
    writer = asyncio.create_task(_pump_outbox(websocket, connection))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket disconnected for connection {connection.connection_id}")
                break
            try:
                data = _frame_text(message)
            except InvalidMessageError as e:
                connection.deliver(OutboundEvent.ERROR.value, {"message": str(e)})
                continue
            await handle_frame(relay, settings, connection, data)
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.connection_id}: {e}", exc_info=True)
    finally:
        await relay.disconnect(connection.connection_id)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
