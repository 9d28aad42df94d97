"""Turnout slip synthesis for dispatched incidents."""

from dataclasses import dataclass
from typing import Any

from fireops.models import Department, EmergencyAlert, FirePersonnel, Incident, Station, Unit, User
from fireops.timeutils import Clock, isoformat, utcnow


@dataclass
class SlipContext:
    """Everything a slip is built from. Only `incident` and `alert` are required."""

    incident: Incident
    alert: EmergencyAlert
    reporter: User | FirePersonnel | None = None
    station: Station | None = None
    department: Department | None = None
    unit: Unit | None = None


class TurnoutSlipGenerator:
    """
    Builds the turnout slip handed to the crew when an incident is dispatched.

    The slip is an opaque JSON document stored on the incident; its shape is
    owned here and consumed by the dashboards as-is.
    """

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def generate(self, context: SlipContext) -> dict[str, Any]:
        alert = context.alert
        reporter = context.reporter
        station = context.station

        return {
            "incidentId": str(context.incident.id),
            "alertId": str(alert.id),
            "generatedAt": isoformat(self.clock()),
            "incident": {
                "type": alert.incident_type,
                "name": alert.incident_name,
                "priority": alert.priority,
                "description": alert.description,
                "estimatedCasualties": alert.estimated_casualties,
                "estimatedDamage": alert.estimated_damage,
                "reportedAt": isoformat(alert.reported_at),
            },
            "location": {
                "name": alert.location_name,
                "url": alert.location_url,
                "coordinates": {"latitude": alert.latitude, "longitude": alert.longitude},
            },
            "reporter": {
                "type": alert.reporter_type,
                "name": reporter.name if reporter else None,
                "email": reporter.email if reporter else None,
                "phone": reporter.phone if reporter else None,
            },
            "station": {
                "id": str(station.id) if station else None,
                "name": station.name if station else None,
                "callSign": station.call_sign if station else None,
                "phone": station.phone_number if station else None,
            },
            "department": context.department.name if context.department else None,
            "unit": {
                "name": context.unit.name if context.unit else None,
                "color": context.unit.color if context.unit else None,
            },
        }
