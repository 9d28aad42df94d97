"""WebSocket router for real-time lifecycle events."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from fireops.notifications.publisher import station_room
from fireops.websocket.manager import manager
from fireops.websocket.schemas import (
    ErrorMessage,
    JoinStationMessage,
    LeaveStationMessage,
    PongMessage,
    RoomMessage,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/events")
async def websocket_events(websocket: WebSocket):
    """
    WebSocket endpoint for alert, incident and referral events.

    Protocol:
    - Client connects and receives every broadcast event
    - Client joins station rooms to also receive that station's events
    - Server sends pong in response to ping for keep-alive

    Message formats:
    Client -> Server:
        {"type": "join_station", "station_id": "<uuid>"}
        {"type": "leave_station", "station_id": "<uuid>"}
        {"type": "ping"}

    Server -> Client:
        {"type": "event", "event": "incident_updated", "room": "station_<uuid>", "data": {...}, "timestamp": "..."}
        {"type": "joined", "room": "station_<uuid>"}
        {"type": "pong"}
        {"type": "error", "message": "..."}
    """
    await manager.connect(websocket)

    try:
        while True:
            raw_message = await websocket.receive_text()

            try:
                data = json.loads(raw_message)
                msg_type = data.get("type")

                if msg_type == "join_station":
                    msg = JoinStationMessage.model_validate(data)
                    room = station_room(msg.station_id)
                    await manager.join(websocket, room)
                    await websocket.send_json(RoomMessage(type="joined", room=room).model_dump())
                    logger.info(f"Client joined {room}")

                elif msg_type == "leave_station":
                    msg = LeaveStationMessage.model_validate(data)
                    room = station_room(msg.station_id)
                    await manager.leave(websocket, room)
                    await websocket.send_json(RoomMessage(type="left", room=room).model_dump())
                    logger.info(f"Client left {room}")

                elif msg_type == "ping":
                    await websocket.send_json(PongMessage().model_dump())

                else:
                    error = ErrorMessage(message=f"Unknown message type: {msg_type}")
                    await websocket.send_json(error.model_dump())

            except json.JSONDecodeError:
                error = ErrorMessage(message="Invalid JSON")
                await websocket.send_json(error.model_dump())
            except Exception as e:
                logger.exception(f"Error processing message: {e}")
                error = ErrorMessage(message=str(e))
                await websocket.send_json(error.model_dump())

    except WebSocketDisconnect:
        await manager.disconnect(websocket)
    except Exception as e:
        logger.exception(f"WebSocket error: {e}")
        await manager.disconnect(websocket)
