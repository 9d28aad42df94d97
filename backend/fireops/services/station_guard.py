"""Admission check run before a station takes a new alert."""

import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.errors import ConflictError, DispatchError, NotFoundError, ValidationError
from fireops.models import Department, EmergencyAlert, Incident, Station, Unit
from fireops.models.alert import OPEN_ALERT_STATUSES
from fireops.models.incident import LIVE_INCIDENT_STATUSES
from fireops.notifications.fanout import incident_summary

# Denial reasons
OUT_OF_COMMISSION = "out_of_commission"
STATION_BUSY = "station_busy"
DUPLICATE_ACTIVE_ALERT = "duplicate_active_alert"


@dataclass
class GuardDecision:
    """Result of `StationGuard.can_accept_alert`. `error` is set on denial."""

    station: Station | None = None
    error: DispatchError | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    @property
    def allowed(self) -> bool:
        return self.error is None


def station_status(station: Station) -> dict[str, Any]:
    return {
        "status": station.status,
        "isActive": station.in_commission,
        "hasActiveAlert": station.has_active_alert,
        "hasActiveIncident": station.has_active_incident,
    }


async def find_live_incident(
    db: AsyncSession, station_id: uuid.UUID
) -> tuple[Incident, dict[str, Any]] | None:
    """
    Most recent live incident at a station, with a display summary.

    The summary names the alert, department and unit the incident is bound to.
    """
    result = await db.execute(
        select(Incident)
        .where(
            Incident.station_id == station_id,
            Incident.status.in_(LIVE_INCIDENT_STATUSES),
        )
        .order_by(Incident.created_at.desc())
        .limit(1)
    )
    incident = result.scalar_one_or_none()
    if incident is None:
        return None

    alert = await db.get(EmergencyAlert, incident.alert_id)
    department = await db.get(Department, incident.department_id)
    unit = await db.get(Unit, incident.unit_id)
    return incident, incident_summary(incident, alert, department, unit)


async def find_open_alert(db: AsyncSession, station_id: uuid.UUID) -> EmergencyAlert | None:
    result = await db.execute(
        select(EmergencyAlert)
        .where(
            EmergencyAlert.station_id == station_id,
            EmergencyAlert.status.in_(OPEN_ALERT_STATUSES),
        )
        .order_by(EmergencyAlert.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


class StationGuard:
    """
    Decides whether a station may accept a new alert.

    Checks run in order and stop at the first denial:
    - station exists
    - station is in commission
    - no live incident (flag re-verified against incidents)
    - no open alert (flag re-verified against alerts)

    Read only: stale flags are ignored, never corrected here.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def can_accept_alert(self, station_id: uuid.UUID) -> GuardDecision:
        station = await self.db.get(Station, station_id)
        if station is None:
            return GuardDecision(error=NotFoundError("Station not found"))

        status = station_status(station)

        if not station.in_commission:
            return GuardDecision(
                station=station,
                error=ValidationError(
                    "Station is out of commission and cannot accept new alerts",
                    reason=OUT_OF_COMMISSION,
                    detail={"stationStatus": status},
                ),
            )

        if station.has_active_incident:
            live = await find_live_incident(self.db, station.id)
            if live is not None:
                incident, summary = live
                return GuardDecision(
                    station=station,
                    error=ConflictError(
                        "Station has an active incident. Please wait until the current "
                        "incident is resolved or closed before creating a new alert.",
                        reason=STATION_BUSY,
                        detail={
                            "stationStatus": status,
                            "activeIncidentId": str(incident.id),
                            "activeIncidentDetails": summary,
                        },
                    ),
                )

        if station.has_active_alert:
            alert = await find_open_alert(self.db, station.id)
            if alert is not None:
                return GuardDecision(
                    station=station,
                    error=ValidationError(
                        "Station already has an active alert. Please wait until the "
                        "current alert is resolved before creating a new one.",
                        reason=DUPLICATE_ACTIVE_ALERT,
                        detail={
                            "stationStatus": status,
                            "activeAlertId": str(alert.id),
                        },
                    ),
                )

        return GuardDecision(station=station, detail={"stationStatus": status})
