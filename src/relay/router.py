import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from relay.protocol import (
    CreateTournament, JoinTournament, TournamentUpdate,
    parse_message, snapshot_dict, sync_message, toast_message,
)
from relay.state import RelayState, room_name

logger = logging.getLogger(__name__)

router = APIRouter(tags=['Relay'])


def get_relay(websocket: WebSocket) -> RelayState:
    return websocket.app.state.relay


async def handle_message(relay: RelayState, connection, raw):
    """Dispatch one inbound envelope. Malformed messages are dropped."""
    try:
        message = parse_message(raw)
    except ValidationError as exc:
        logger.warning("Dropping malformed relay message: %s", exc.errors()[:1])
        return

    if isinstance(message, CreateTournament):
        snapshot = snapshot_dict(message.data)
        room = room_name(snapshot["id"])
        async with relay.lock(room):
            revision = relay.store(snapshot)
            relay.join(room, connection)
            await relay.broadcast(room, sync_message(snapshot, revision))
        logger.info("Tournament %s registered with relay", snapshot["id"])

    elif isinstance(message, JoinTournament):
        code = message.data.access_code
        snapshot = relay.lookup(code)
        while snapshot is not None:
            room = room_name(snapshot["id"])
            async with relay.lock(room):
                # An update may have been stored while waiting for the room
                current = relay.lookup(code)
                if current is not None and current["id"] == snapshot["id"]:
                    relay.join(room, connection)
                    await relay.send(connection, sync_message(current, relay.revision(room)))
                    return
            snapshot = current
        # Unknown code: the caller retries or times out
        logger.debug("Join for unknown access code %s", code)

    elif isinstance(message, TournamentUpdate):
        snapshot = snapshot_dict(message.data.tournament)
        room = room_name(snapshot["id"])
        async with relay.lock(room):
            revision = relay.store(snapshot)
            await relay.broadcast(room, sync_message(snapshot, revision))
            if message.data.update is not None:
                await relay.broadcast(room, toast_message(message.data.update), exclude=connection)


@router.websocket("/ws")
async def relay_socket(websocket: WebSocket, relay: RelayState = Depends(get_relay)):
    await websocket.accept()
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            payload = frame.get("text")
            if payload is None:
                payload = frame.get("bytes") or b""
            try:
                raw = json.loads(payload)
            except ValueError:
                logger.warning("Dropping non-JSON relay message")
                continue
            await handle_message(relay, websocket, raw)
    except WebSocketDisconnect:
        pass
    finally:
        relay.leave_all(websocket)
