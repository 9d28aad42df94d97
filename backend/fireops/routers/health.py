"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.database import get_db
from fireops.models import EmergencyAlert, Incident, Unit
from fireops.models.alert import OPEN_ALERT_STATUSES
from fireops.models.incident import LIVE_INCIDENT_STATUSES

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    open_alerts: int
    live_incidents: int
    units_on_duty: int


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """
    Health check endpoint with a database round-trip.

    Reports how many alerts are open, incidents live and units on duty.
    """
    open_alerts_result = await db.execute(
        select(func.count(EmergencyAlert.id)).where(
            EmergencyAlert.status.in_(OPEN_ALERT_STATUSES)
        )
    )
    live_incidents_result = await db.execute(
        select(func.count(Incident.id)).where(Incident.status.in_(LIVE_INCIDENT_STATUSES))
    )
    units_result = await db.execute(
        select(func.count(Unit.id)).where(Unit.is_active.is_(True))
    )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        open_alerts=open_alerts_result.scalar() or 0,
        live_incidents=live_incidents_result.scalar() or 0,
        units_on_duty=units_result.scalar() or 0,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness check for container orchestration."""
    return {"status": "alive"}
