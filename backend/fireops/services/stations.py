"""Station lookups and maintenance of the denormalized busy flags."""

import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.errors import NotFoundError
from fireops.models import EmergencyAlert, Incident, Station
from fireops.models.alert import OPEN_ALERT_STATUSES
from fireops.models.incident import LIVE_INCIDENT_STATUSES
from fireops.schemas.alert import StationDescriptor
from fireops.schemas.common import parse_id
from fireops.timeutils import utcnow

logger = logging.getLogger(__name__)


async def count_open_alerts(db: AsyncSession, station_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(EmergencyAlert)
        .where(
            EmergencyAlert.station_id == station_id,
            EmergencyAlert.status.in_(OPEN_ALERT_STATUSES),
        )
    )
    return result.scalar_one()


async def count_live_incidents(db: AsyncSession, station_id: uuid.UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Incident)
        .where(
            Incident.station_id == station_id,
            Incident.status.in_(LIVE_INCIDENT_STATUSES),
        )
    )
    return result.scalar_one()


async def refresh_station_flags(
    db: AsyncSession,
    station_id: uuid.UUID | None,
    *,
    alerts: bool = False,
    incidents: bool = False,
    keep: tuple[Any, ...] = (),
) -> bool:
    """
    Recompute `has_active_alert` / `has_active_incident` from live counts.

    Runs after the primary mutation has been committed. A failure here is
    logged and rolled back without touching the caller's result; objects in
    `keep` are reloaded after a rollback so they stay readable.

    Returns:
        True if the flags were written.
    """
    if station_id is None:
        return False

    try:
        station = await db.get(Station, station_id)
        if station is None:
            return False

        if alerts:
            station.has_active_alert = await count_open_alerts(db, station_id) > 0
        if incidents:
            station.has_active_incident = await count_live_incidents(db, station_id) > 0
        station.updated_at = utcnow()
        await db.commit()
        return True
    except Exception as e:
        logger.error(f"Failed to refresh flags for station {station_id}: {e}", exc_info=True)
        await db.rollback()
        for obj in keep:
            await db.refresh(obj)
        return False


async def resolve_station(db: AsyncSession, station: str | StationDescriptor) -> Station:
    """
    Find the station an alert is addressed to.

    Accepts a station id, or a descriptor matched by its id, then place id,
    then exact coordinates, then a case-insensitive name fragment.

    Raises:
        ValidationError: malformed id
        NotFoundError: nothing matched
    """
    if isinstance(station, StationDescriptor) and station.id:
        station = station.id

    if isinstance(station, str):
        station_id = parse_id(station, "station")
        found = await db.get(Station, station_id)
        if found is None:
            raise NotFoundError("Station not found")
        return found

    found = None
    if station.place_id:
        result = await db.execute(select(Station).where(Station.place_id == station.place_id))
        found = result.scalars().first()

    if found is None and station.latitude is not None and station.longitude is not None:
        result = await db.execute(
            select(Station).where(
                Station.lat == station.latitude,
                Station.lng == station.longitude,
            )
        )
        found = result.scalars().first()

    if found is None and station.name:
        result = await db.execute(
            select(Station).where(
                func.lower(Station.name).contains(station.name.lower(), autoescape=True)
            )
        )
        found = result.scalars().first()

    if found is None:
        provided: dict[str, Any] = station.model_dump(by_alias=True, exclude_none=True)
        raise NotFoundError(
            "Station not found. Please ensure the station exists in the database.",
            detail={"providedStation": provided},
        )
    return found
