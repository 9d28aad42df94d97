"""Tests for WebSocket connection manager."""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from fireops.main import app
from fireops.notifications.publisher import station_room
from fireops.websocket.manager import ClientSubscription, ConnectionManager


@pytest.fixture
def room() -> str:
    return station_room(uuid.uuid4())


class TestClientSubscription:
    """Tests for ClientSubscription."""

    def test_broadcast_matches_everyone(self):
        """Test that broadcasts reach clients with no rooms."""
        sub = ClientSubscription(websocket=MagicMock())

        assert sub.matches(None) is True

    def test_matches_joined_room(self, room):
        sub = ClientSubscription(websocket=MagicMock(), rooms={room})

        assert sub.matches(room) is True

    def test_ignores_other_rooms(self, room):
        sub = ClientSubscription(websocket=MagicMock(), rooms={"station_other"})

        assert sub.matches(room) is False


class TestConnectionManager:
    """Tests for ConnectionManager."""

    @pytest.mark.asyncio
    async def test_connect(self):
        """Test connecting a WebSocket."""
        manager = ConnectionManager()
        ws = AsyncMock()

        await manager.connect(ws)

        assert manager.connection_count == 1
        ws.accept.assert_called_once()

    @pytest.mark.asyncio
    async def test_disconnect(self):
        """Test disconnecting a WebSocket."""
        manager = ConnectionManager()
        ws = AsyncMock()

        await manager.connect(ws)
        assert manager.connection_count == 1

        await manager.disconnect(ws)
        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_nonexistent(self):
        """Test disconnecting a WebSocket that's not connected."""
        manager = ConnectionManager()
        ws = AsyncMock()

        # Should not raise
        await manager.disconnect(ws)
        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_join_and_leave(self, room):
        manager = ConnectionManager()
        ws = AsyncMock()
        await manager.connect(ws)

        await manager.join(ws, room)
        assert manager.room_size(room) == 1

        await manager.leave(ws, room)
        assert manager.room_size(room) == 0

    @pytest.mark.asyncio
    async def test_publish_no_connections(self):
        """Test publish with no connected clients."""
        manager = ConnectionManager()

        # Should not raise
        await manager.publish("alert_created", {"id": "a1"})

    @pytest.mark.asyncio
    async def test_broadcast_reaches_all_clients(self):
        manager = ConnectionManager()
        connections = [AsyncMock() for _ in range(3)]
        for ws in connections:
            await manager.connect(ws)

        await manager.publish("alert_created", {"id": "a1"})

        for ws in connections:
            ws.send_json.assert_called_once()
        message = connections[0].send_json.call_args.args[0]
        assert message["type"] == "event"
        assert message["event"] == "alert_created"
        assert message["room"] is None
        assert message["data"] == {"id": "a1"}

    @pytest.mark.asyncio
    async def test_room_event_reaches_members_only(self, room):
        """Test room events skip clients outside the room."""
        manager = ConnectionManager()
        member = AsyncMock()
        outsider = AsyncMock()
        await manager.connect(member)
        await manager.connect(outsider)
        await manager.join(member, room)

        await manager.publish("incident_updated", {"id": "i1"}, room=room)

        member.send_json.assert_called_once()
        outsider.send_json.assert_not_called()
        assert member.send_json.call_args.args[0]["room"] == room

    @pytest.mark.asyncio
    async def test_publish_handles_send_error(self):
        """Test publish handles send errors gracefully."""
        manager = ConnectionManager()

        ws = AsyncMock()
        ws.send_json.side_effect = Exception("Connection closed")

        await manager.connect(ws)

        # Should not raise
        await manager.publish("alert_created", {"id": "a1"})


class TestWebSocketEndpoint:
    """Tests for the /ws/events protocol (lifespan not entered, no database needed)."""

    def test_join_ping_and_leave(self):
        station_id = str(uuid.uuid4())
        client = TestClient(app)

        with client.websocket_connect("/ws/events") as ws:
            ws.send_json({"type": "join_station", "station_id": station_id})
            assert ws.receive_json() == {"type": "joined", "room": station_room(station_id)}

            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

            ws.send_json({"type": "leave_station", "station_id": station_id})
            assert ws.receive_json() == {"type": "left", "room": station_room(station_id)}

    def test_bad_messages(self):
        client = TestClient(app)

        with client.websocket_connect("/ws/events") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

            ws.send_json({"type": "subscribe"})
            reply = ws.receive_json()
            assert reply["type"] == "error"
            assert "subscribe" in reply["message"]
