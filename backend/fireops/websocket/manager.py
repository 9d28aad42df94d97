"""WebSocket connection manager delivering lifecycle events to station rooms."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket

from fireops.websocket.schemas import EventMessage

logger = logging.getLogger(__name__)


@dataclass
class ClientSubscription:
    """Tracks the station rooms a client has joined."""

    websocket: WebSocket
    rooms: set[str] = field(default_factory=set)
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def matches(self, room: str | None) -> bool:
        """Broadcasts (no room) reach everyone; room events only members."""
        return room is None or room in self.rooms


class ConnectionManager:
    """
    Manages WebSocket connections and publishes events to them.

    Implements the `Publisher` interface used by the lifecycle services.
    Designed for single-instance deployment; can be extended with Redis pub/sub
    for multi-instance horizontal scaling.
    """

    def __init__(self):
        self._connections: dict[WebSocket, ClientSubscription] = {}
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._connections)

    def room_size(self, room: str) -> int:
        return sum(1 for sub in self._connections.values() if room in sub.rooms)

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections[websocket] = ClientSubscription(websocket=websocket)
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket."""
        async with self._lock:
            if websocket in self._connections:
                del self._connections[websocket]
        logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    async def join(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            if websocket in self._connections:
                self._connections[websocket].rooms.add(room)
        logger.debug(f"WebSocket joined {room}")

    async def leave(self, websocket: WebSocket, room: str) -> None:
        async with self._lock:
            if websocket in self._connections:
                self._connections[websocket].rooms.discard(room)
        logger.debug(f"WebSocket left {room}")

    async def publish(
        self, event: str, payload: dict[str, Any], room: str | None = None
    ) -> None:
        """
        Deliver an event to every subscriber, or only to members of `room`.

        Send failures drop the offending connection and never propagate.
        """
        async with self._lock:
            if not self._connections:
                return

            message = EventMessage(
                event=event,
                room=room,
                data=payload,
                timestamp=datetime.now(UTC),
            )

            tasks = [
                self._send_safe(websocket, message)
                for websocket, subscription in list(self._connections.items())
                if subscription.matches(room)
            ]

            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                logger.debug(f"Published {event} to {len(tasks)} subscribers ({room or 'broadcast'})")

    async def _send_safe(self, websocket: WebSocket, message: EventMessage) -> None:
        """Send message to websocket, handling errors gracefully."""
        try:
            await websocket.send_json(message.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to send to websocket: {e}")
            # Schedule disconnect (don't do it here to avoid deadlock)
            asyncio.create_task(self.disconnect(websocket))


# Global singleton instance
manager = ConnectionManager()
