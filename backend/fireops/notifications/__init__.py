"""Real-time notification fan-out."""

from fireops.notifications.fanout import NotificationFanout
from fireops.notifications.publisher import Publisher, station_room

__all__ = ["NotificationFanout", "Publisher", "station_room"]
