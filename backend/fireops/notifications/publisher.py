"""Publish boundary for real-time lifecycle events."""

from typing import Any, Protocol


def station_room(station_id: Any) -> str:
    """Room name for subscribers of one station."""
    return f"station_{station_id}"


class Publisher(Protocol):
    """
    Anything that can deliver a named event.

    `room=None` broadcasts to every subscriber; otherwise only members of the
    room receive it.
    """

    async def publish(
        self, event: str, payload: dict[str, Any], room: str | None = None
    ) -> None: ...
