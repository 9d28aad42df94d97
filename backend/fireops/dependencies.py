"""FastAPI dependencies wiring sessions and the publisher into services."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.database import get_db
from fireops.notifications import NotificationFanout, Publisher
from fireops.services import AlertLifecycle, IncidentLifecycle, UnitScheduler


def get_publisher(request: Request) -> Publisher:
    """The application's publish handle, created once at startup."""
    return request.app.state.publisher


DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_fanout(publisher: Annotated[Publisher, Depends(get_publisher)]) -> NotificationFanout:
    return NotificationFanout(publisher)


def get_incident_lifecycle(
    db: DbSession,
    fanout: Annotated[NotificationFanout, Depends(get_fanout)],
) -> IncidentLifecycle:
    return IncidentLifecycle(db, fanout)


def get_alert_lifecycle(
    db: DbSession,
    fanout: Annotated[NotificationFanout, Depends(get_fanout)],
    incidents: Annotated[IncidentLifecycle, Depends(get_incident_lifecycle)],
) -> AlertLifecycle:
    return AlertLifecycle(db, fanout, incidents)


def get_unit_scheduler(db: DbSession) -> UnitScheduler:
    return UnitScheduler(db)


Alerts = Annotated[AlertLifecycle, Depends(get_alert_lifecycle)]
Incidents = Annotated[IncidentLifecycle, Depends(get_incident_lifecycle)]
Units = Annotated[UnitScheduler, Depends(get_unit_scheduler)]
