"""Turns lifecycle transitions into published events.

Every event goes to the global broadcast and to the room of the station it
concerns. Publish failures are logged and never reach the caller.
"""

import logging
from typing import Any

from fireops.models import Department, EmergencyAlert, FirePersonnel, Incident, Station, Unit, User
from fireops.models.alert import ALERT_REFERRED
from fireops.models.incident import INCIDENT_DISPATCHED, INCIDENT_REFERRED
from fireops.notifications.publisher import Publisher, station_room
from fireops.timeutils import isoformat, utcnow

logger = logging.getLogger(__name__)

ACTIVE_INCIDENT_MESSAGE = (
    "This station has an active incident. Would you like to refer or accept this new alert?"
)


def _str(value: Any) -> str | None:
    return str(value) if value is not None else None


def station_info(station: Station | None) -> dict[str, Any] | None:
    """Flatten a station to id + display fields."""
    if station is None:
        return None
    return {
        "id": str(station.id),
        "name": station.name,
        "location": station.location,
        "phone": station.phone_number,
        "lat": station.lat,
        "lng": station.lng,
        "placeId": station.place_id,
    }


def alert_payload(
    alert: EmergencyAlert,
    reporter: User | FirePersonnel | None = None,
    station: Station | None = None,
) -> dict[str, Any]:
    """Serializable view of an alert for subscribers."""
    user_contact = None
    if reporter is not None:
        user_contact = {"email": reporter.email, "phone": reporter.phone}

    return {
        "id": str(alert.id),
        "incidentType": alert.incident_type,
        "incidentName": alert.incident_name,
        "userName": reporter.name if reporter is not None else None,
        "userContact": user_contact,
        "reporterType": alert.reporter_type,
        "locationName": alert.location_name,
        "locationUrl": alert.location_url,
        "gpsCoordinates": {"latitude": alert.latitude, "longitude": alert.longitude},
        "stationId": str(alert.station_id),
        "stationInfo": station_info(station),
        "priority": alert.priority,
        "status": alert.status,
        "timestamps": {
            "createdAt": isoformat(alert.created_at),
            "updatedAt": isoformat(alert.updated_at),
            "reportedAt": isoformat(alert.reported_at),
        },
    }


def incident_station_id(incident: Incident, alert: EmergencyAlert | None = None) -> str | None:
    """
    Station whose room receives an incident event.

    Referral target while referred, else the incident's own station, else the
    station of its alert.
    """
    if incident.status == INCIDENT_REFERRED and incident.referred_to_station_id:
        return str(incident.referred_to_station_id)
    if incident.station_id:
        return str(incident.station_id)
    if alert is not None:
        return _str(alert.station_id)
    return None


def incident_payload(incident: Incident, alert: EmergencyAlert | None = None) -> dict[str, Any]:
    """Serializable view of an incident for subscribers."""
    return {
        "id": str(incident.id),
        "alertId": str(incident.alert_id),
        "departmentOnDuty": _str(incident.department_id),
        "unitOnDuty": _str(incident.unit_id),
        "status": incident.status,
        "stationId": incident_station_id(incident, alert),
        "dispatchedAt": isoformat(incident.dispatched_at),
        "arrivedAt": isoformat(incident.arrived_at),
        "resolvedAt": isoformat(incident.resolved_at),
        "closedAt": isoformat(incident.closed_at),
        "createdAt": isoformat(incident.created_at),
        "updatedAt": isoformat(incident.updated_at),
        "turnoutSlip": incident.turnout_slip,
    }


def incident_summary(
    incident: Incident,
    alert: EmergencyAlert | None = None,
    department: Department | None = None,
    unit: Unit | None = None,
) -> dict[str, Any]:
    """Short description of a live incident, shown to clients of a busy station."""
    return {
        "id": str(incident.id),
        "alertId": str(incident.alert_id),
        "incidentName": alert.incident_name if alert is not None else "Unknown",
        "incidentType": alert.incident_type if alert is not None else "Unknown",
        "status": incident.status,
        "departmentOnDuty": _str(incident.department_id),
        "department": department.name if department is not None else "Unknown",
        "unitOnDuty": _str(incident.unit_id),
        "unit": unit.name if unit is not None else "Unknown",
        "startedAt": isoformat(incident.created_at),
    }


def _station_ref(station: Station | None) -> dict[str, Any] | None:
    if station is None:
        return None
    return {"id": str(station.id), "name": station.name, "location": station.location}


def referral_payload(
    data_type: str,
    record_id: Any,
    from_station: Station | None,
    to_station: Station | None,
    reason: str | None,
    referred_at: Any,
) -> dict[str, Any]:
    return {
        "dataId": str(record_id),
        "dataType": data_type,
        "fromStation": _station_ref(from_station),
        "toStation": _station_ref(to_station),
        "reason": reason,
        "status": "pending",
        "referredAt": isoformat(referred_at),
        "updatedAt": isoformat(utcnow()),
    }


class NotificationFanout:
    """Publishes lifecycle events through an injected publisher."""

    def __init__(self, publisher: Publisher):
        self.publisher = publisher

    async def _emit(self, event: str, payload: dict[str, Any], *station_ids: str | None) -> None:
        """Broadcast, then deliver to each station room. Never raises."""
        rooms: list[str | None] = [None]
        rooms.extend(station_room(sid) for sid in dict.fromkeys(station_ids) if sid)

        for room in rooms:
            try:
                await self.publisher.publish(event, payload, room=room)
            except Exception as e:
                logger.error(f"Failed to publish {event} to {room or 'broadcast'}: {e}", exc_info=True)

    async def alert_created(
        self,
        alert: EmergencyAlert,
        reporter: User | FirePersonnel | None = None,
        station: Station | None = None,
    ) -> None:
        payload = alert_payload(alert, reporter, station)
        await self._emit("alert_created", payload, payload["stationId"])
        # Legacy event name still consumed by older dashboards
        await self._emit("new_alert", payload, payload["stationId"])

    async def alert_updated(
        self,
        alert: EmergencyAlert,
        reporter: User | FirePersonnel | None = None,
        station: Station | None = None,
    ) -> None:
        payload = alert_payload(alert, reporter, station)
        target = payload["stationId"]
        if alert.status == ALERT_REFERRED and alert.referred_to_station_id:
            target = str(alert.referred_to_station_id)
        await self._emit("alert_updated", payload, target)

    async def alert_deleted(self, alert_id: Any, station_id: Any = None) -> None:
        payload = {"id": str(alert_id), "deletedAt": isoformat(utcnow())}
        await self._emit("alert_deleted", payload, _str(station_id))

    async def active_incident_exists(
        self,
        alert: EmergencyAlert,
        active_incident: dict[str, Any],
        reporter: User | FirePersonnel | None = None,
        station: Station | None = None,
    ) -> None:
        payload = alert_payload(alert, reporter, station)
        notification = {
            "alert": payload,
            "activeIncident": active_incident,
            "stationId": payload["stationId"],
            "message": ACTIVE_INCIDENT_MESSAGE,
            "requiresAction": True,
        }
        await self._emit("active_incident_exists", notification, payload["stationId"])

    async def incident_created(self, incident: Incident, alert: EmergencyAlert | None = None) -> None:
        payload = incident_payload(incident, alert)
        await self._emit("incident_created", payload, payload["stationId"])

    async def incident_updated(
        self,
        incident: Incident,
        alert: EmergencyAlert | None = None,
        entered_dispatched: bool = False,
    ) -> None:
        payload = incident_payload(incident, alert)
        await self._emit("incident_updated", payload, payload["stationId"])
        if entered_dispatched and incident.status == INCIDENT_DISPATCHED and incident.turnout_slip:
            await self._emit("turnout_slip_dispatched", payload, payload["stationId"])

    async def incident_deleted(self, incident_id: Any, station_id: Any = None) -> None:
        payload = {"id": str(incident_id), "deletedAt": isoformat(utcnow())}
        await self._emit("incident_deleted", payload, _str(station_id))

    async def referral_created(
        self,
        data_type: str,
        record_id: Any,
        from_station: Station | None,
        to_station: Station | None,
        reason: str | None,
        referred_at: Any,
    ) -> None:
        payload = referral_payload(data_type, record_id, from_station, to_station, reason, referred_at)
        # Only the receiving station is notified, not the one handing off
        await self._emit("referral_created", payload, _str(to_station.id if to_station else None))

    async def referral_updated(
        self,
        data_type: str,
        record_id: Any,
        from_station: Station | None,
        to_station: Station | None,
        reason: str | None,
        referred_at: Any,
    ) -> None:
        payload = referral_payload(data_type, record_id, from_station, to_station, reason, referred_at)
        await self._emit(
            "referral_updated",
            payload,
            _str(from_station.id if from_station else None),
            _str(to_station.id if to_station else None),
        )
