"""WebSocket module for real-time lifecycle events."""

from fireops.websocket.manager import ConnectionManager, manager
from fireops.websocket.router import router as websocket_router

__all__ = ["ConnectionManager", "manager", "websocket_router"]
