"""WebSocket message schemas."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


class JoinStationMessage(BaseModel):
    """Client request to receive events for one station."""

    type: Literal["join_station"] = "join_station"
    station_id: str


class LeaveStationMessage(BaseModel):
    """Client request to stop receiving events for one station."""

    type: Literal["leave_station"] = "leave_station"
    station_id: str


class EventMessage(BaseModel):
    """Server message carrying one lifecycle event."""

    type: Literal["event"] = "event"
    event: str
    room: str | None = None
    data: dict[str, Any]
    timestamp: datetime


class RoomMessage(BaseModel):
    """Acknowledgement of a join or leave."""

    type: Literal["joined", "left"]
    room: str


class PongMessage(BaseModel):
    """Pong response for keep-alive."""

    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    """Error message from server."""

    type: Literal["error"] = "error"
    message: str
