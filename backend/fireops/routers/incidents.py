"""API routes for incidents."""

import logging
from datetime import datetime

from fastapi import APIRouter, Query, status

from fireops.dependencies import Incidents
from fireops.schemas.common import envelope, parse_id
from fireops.schemas.incident import (
    IncidentCreate,
    IncidentOut,
    IncidentRefer,
    IncidentStatusUpdate,
    IncidentUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_incident(body: IncidentCreate, incidents: Incidents) -> dict:
    incident = await incidents.create(body)
    return envelope(IncidentOut.model_validate(incident), "Incident created successfully")


@router.get("")
async def list_incidents(
    incidents: Incidents,
    incident_status: str | None = Query(None, alias="status"),
    station_id: str | None = Query(None, alias="stationId"),
    department_id: str | None = Query(None, alias="departmentId"),
    unit_id: str | None = Query(None, alias="unitId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict:
    """List incidents, newest first."""
    items, pagination = await incidents.list_incidents(
        status=incident_status,
        station_id=parse_id(station_id, "station") if station_id else None,
        department_id=parse_id(department_id, "department") if department_id else None,
        unit_id=parse_id(unit_id, "unit") if unit_id else None,
        page=page,
        limit=limit,
    )
    return envelope(
        [IncidentOut.model_validate(i) for i in items],
        pagination=pagination.model_dump(),
    )


@router.get("/stats")
async def incident_stats(
    incidents: Incidents,
    department_id: str | None = Query(None, alias="departmentId"),
    unit_id: str | None = Query(None, alias="unitId"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> dict:
    """Counts per status and mean response/resolution minutes."""
    stats = await incidents.stats(
        department_id=parse_id(department_id, "department") if department_id else None,
        unit_id=parse_id(unit_id, "unit") if unit_id else None,
        start=start_date,
        end=end_date,
    )
    return envelope(stats)


@router.get("/alert/{alert_id}")
async def incidents_for_alert(alert_id: str, incidents: Incidents) -> dict:
    items = await incidents.by_alert(parse_id(alert_id, "alert"))
    return envelope([IncidentOut.model_validate(i) for i in items])


@router.get("/{incident_id}")
async def get_incident(incident_id: str, incidents: Incidents) -> dict:
    incident = await incidents.get(parse_id(incident_id, "incident"))
    return envelope(IncidentOut.model_validate(incident))


@router.put("/{incident_id}")
async def update_incident(incident_id: str, body: IncidentUpdate, incidents: Incidents) -> dict:
    incident = await incidents.update(parse_id(incident_id, "incident"), body)
    return envelope(IncidentOut.model_validate(incident), "Incident updated successfully")


@router.patch("/{incident_id}/status")
async def set_incident_status(
    incident_id: str, body: IncidentStatusUpdate, incidents: Incidents
) -> dict:
    """
    Move an incident along its lifecycle.

    Statuses only move forward; re-sending the current status is a no-op for
    its timestamp. Entering `dispatched` generates the turnout slip.
    """
    incident = await incidents.set_status(
        parse_id(incident_id, "incident"), body.status, body.timestamp
    )
    return envelope(IncidentOut.model_validate(incident), "Incident status updated successfully")


@router.patch("/{incident_id}/refer")
async def refer_incident(incident_id: str, body: IncidentRefer, incidents: Incidents) -> dict:
    incident = await incidents.refer(parse_id(incident_id, "incident"), body.station_id, body.reason)
    return envelope(IncidentOut.model_validate(incident), "Incident referred successfully")


@router.delete("/{incident_id}")
async def delete_incident(incident_id: str, incidents: Incidents) -> dict:
    await incidents.delete(parse_id(incident_id, "incident"))
    return envelope(message="Incident deleted successfully")
