"""API routes for emergency alerts."""

import logging
from datetime import datetime

from fastapi import APIRouter, Query, Request, status

from fireops.dependencies import Alerts
from fireops.limiter import ALERT_CREATE_LIMIT, limiter
from fireops.schemas.alert import AlertCreate, AlertDecline, AlertOut, AlertRefer, AlertUpdate
from fireops.schemas.common import envelope, parse_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/emergency/alerts", tags=["alerts"])


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(ALERT_CREATE_LIMIT)
async def create_alert(request: Request, body: AlertCreate, alerts: Alerts) -> dict:
    """
    Raise an emergency alert.

    The target station must be in commission with no live incident and no
    other open alert.
    """
    alert = await alerts.create(body)
    return envelope(AlertOut.model_validate(alert), "Emergency alert created successfully")


@router.get("")
async def list_alerts(
    alerts: Alerts,
    station_id: str | None = Query(None, alias="stationId"),
    user_id: str | None = Query(None, alias="userId"),
    alert_status: str | None = Query(None, alias="status"),
    priority: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
) -> dict:
    """List alerts, most recently reported first."""
    items, pagination = await alerts.list_alerts(
        station_id=parse_id(station_id, "station") if station_id else None,
        reporter_id=parse_id(user_id, "reporter") if user_id else None,
        status=alert_status,
        priority=priority,
        page=page,
        limit=limit,
    )
    return envelope(
        [AlertOut.model_validate(a) for a in items],
        pagination=pagination.model_dump(),
    )


@router.get("/stats")
async def alert_stats(
    alerts: Alerts,
    station_id: str | None = Query(None, alias="stationId"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> dict:
    stats = await alerts.stats(
        station_id=parse_id(station_id, "station") if station_id else None,
        start=start_date,
        end=end_date,
    )
    return envelope(stats)


@router.get("/{alert_id}")
async def get_alert(alert_id: str, alerts: Alerts) -> dict:
    alert = await alerts.get(parse_id(alert_id, "emergency alert"))
    return envelope(AlertOut.model_validate(alert))


@router.put("/{alert_id}")
async def update_alert(alert_id: str, body: AlertUpdate, alerts: Alerts) -> dict:
    alert = await alerts.update(parse_id(alert_id, "emergency alert"), body)
    return envelope(AlertOut.model_validate(alert), "Emergency alert updated successfully")


@router.delete("/{alert_id}")
async def delete_alert(alert_id: str, alerts: Alerts) -> dict:
    await alerts.delete(parse_id(alert_id, "emergency alert"))
    return envelope(message="Emergency alert deleted successfully")


@router.patch("/{alert_id}/dispatch")
async def dispatch_alert(alert_id: str, alerts: Alerts) -> dict:
    """Accept an alert. Creates the incident for the station's on-duty unit."""
    alert = await alerts.accept(parse_id(alert_id, "emergency alert"))
    return envelope(AlertOut.model_validate(alert), "Emergency alert dispatched successfully")


@router.patch("/{alert_id}/decline")
async def decline_alert(alert_id: str, body: AlertDecline, alerts: Alerts) -> dict:
    alert = await alerts.decline(parse_id(alert_id, "emergency alert"), body.reason)
    return envelope(AlertOut.model_validate(alert), "Emergency alert declined successfully")


@router.patch("/{alert_id}/refer")
async def refer_alert(alert_id: str, body: AlertRefer, alerts: Alerts) -> dict:
    alert = await alerts.refer(parse_id(alert_id, "emergency alert"), body.station_id, body.reason)
    return envelope(AlertOut.model_validate(alert), "Emergency alert referred successfully")
