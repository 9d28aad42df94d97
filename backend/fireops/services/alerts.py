"""Alert lifecycle: creation behind the station guard, then triage."""

import logging
import math
import uuid
from datetime import datetime

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.errors import ConflictError, NotFoundError, ValidationError
from fireops.models import Department, EmergencyAlert, Incident, Station, Unit
from fireops.models.alert import (
    ALERT_ACCEPTED,
    ALERT_ACTIVE,
    ALERT_REFERRED,
    ALERT_REJECTED,
    ALERT_STATUSES,
)
from fireops.notifications import NotificationFanout
from fireops.schemas.alert import AlertCreate, AlertStats, AlertUpdate
from fireops.schemas.common import Pagination, parse_id
from fireops.services.incidents import IncidentLifecycle, normalize_status
from fireops.services.reporters import load_reporter, resolve_reporter
from fireops.services.station_guard import StationGuard, find_live_incident
from fireops.services.stations import refresh_station_flags, resolve_station
from fireops.timeutils import Clock, utcnow

logger = logging.getLogger(__name__)

ALERT_DATA_TYPE = "alert"

# Plain columns copied straight from an update patch
PATCHABLE_FIELDS = (
    "incident_type",
    "incident_name",
    "priority",
    "description",
    "estimated_casualties",
    "estimated_damage",
)


class AlertLifecycle:
    """
    Triage state machine for emergency alerts.

    An alert starts `active` and reaches exactly one outcome: accepted
    (dispatched), rejected (declined) or referred. Outcomes are final.
    Accepting an alert materializes an incident through `IncidentLifecycle`.
    """

    def __init__(
        self,
        db: AsyncSession,
        fanout: NotificationFanout,
        incidents: IncidentLifecycle | None = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.fanout = fanout
        self.clock = clock
        self.incidents = incidents or IncidentLifecycle(db, fanout, clock=clock)

    async def get(self, alert_id: uuid.UUID) -> EmergencyAlert:
        alert = await self.db.get(EmergencyAlert, alert_id)
        if alert is None:
            raise NotFoundError("Emergency alert not found")
        return alert

    def _ensure_open(self, alert: EmergencyAlert, action: str) -> None:
        terminal = alert.terminal_status
        if terminal:
            raise ConflictError(
                f"Emergency alert has already been {terminal} and can no longer be {action}"
            )

    async def _materialize(self, alert: EmergencyAlert) -> None:
        """Create the incident for an accepted alert. Failures never undo the acceptance."""
        try:
            await self.incidents.materialize(alert.id, alert.station_id)
        except Exception as e:
            logger.error(f"Failed to create incident for alert {alert.id}: {e}", exc_info=True)
            await self.db.rollback()
        await self.db.refresh(alert)

    async def _publish_update(self, alert: EmergencyAlert) -> None:
        reporter = await load_reporter(self.db, alert.reporter_id, alert.reporter_type)
        station = await self.db.get(Station, alert.station_id)
        await self.fanout.alert_updated(alert, reporter, station)

    async def create(self, data: AlertCreate) -> EmergencyAlert:
        """
        Raise a new alert at a station.

        Raises:
            ValidationError: malformed ids, or the station is out of commission
                or already has an open alert
            NotFoundError: unknown reporter or station
            ConflictError: the station has a live incident
        """
        reporter_id = parse_id(data.user_id, "user")
        reporter, reporter_type = await resolve_reporter(self.db, reporter_id)
        station = await resolve_station(self.db, data.station)

        decision = await StationGuard(self.db).can_accept_alert(station.id)
        if not decision.allowed:
            logger.info(f"Station {station.id} refused alert: {decision.error.reason}")
            raise decision.error

        now = self.clock()
        alert = EmergencyAlert(
            id=uuid.uuid4(),
            incident_type=data.incident_type,
            incident_name=data.incident_name,
            priority=data.priority,
            description=data.description,
            estimated_casualties=data.estimated_casualties,
            estimated_damage=data.estimated_damage,
            location_name=data.location.location_name,
            location_url=data.location.location_url,
            latitude=data.location.coordinates.latitude,
            longitude=data.location.coordinates.longitude,
            station_id=station.id,
            reporter_id=reporter_id,
            reporter_type=reporter_type,
            status=ALERT_ACTIVE,
            reported_at=now,
            created_at=now,
            updated_at=now,
        )
        self.db.add(alert)
        await self.db.commit()
        logger.info(f"Alert {alert.id} created at station {station.id} by {reporter_type} {reporter_id}")

        await refresh_station_flags(self.db, station.id, alerts=True, keep=(alert, station))

        live = await find_live_incident(self.db, station.id)
        if live is not None:
            _, summary = live
            await self.fanout.active_incident_exists(alert, summary, reporter, station)
        else:
            await self.fanout.alert_created(alert, reporter, station)
        return alert

    async def accept(self, alert_id: uuid.UUID) -> EmergencyAlert:
        """Dispatch an alert and materialize its incident."""
        alert = await self.get(alert_id)
        self._ensure_open(alert, "dispatched")

        if alert.unit_id is not None:
            unit = await self.db.get(Unit, alert.unit_id)
            if unit is None or not unit.is_active:
                raise ValidationError(
                    "Emergency alert must be assigned to an active unit before dispatch"
                )

        was_accepted = alert.status == ALERT_ACCEPTED
        now = self.clock()
        alert.dispatched = True
        alert.dispatched_at = now
        alert.status = ALERT_ACCEPTED
        alert.updated_at = now
        await self.db.commit()
        logger.info(f"Alert {alert.id} dispatched")

        if not was_accepted:
            await self._materialize(alert)

        await refresh_station_flags(self.db, alert.station_id, alerts=True, keep=(alert,))
        await self._publish_update(alert)
        return alert

    async def decline(self, alert_id: uuid.UUID, reason: str | None) -> EmergencyAlert:
        if not reason or not reason.strip():
            raise ValidationError("Decline reason is required")

        alert = await self.get(alert_id)
        self._ensure_open(alert, "declined")

        now = self.clock()
        alert.declined = True
        alert.declined_at = now
        alert.decline_reason = reason.strip()
        alert.status = ALERT_REJECTED
        alert.updated_at = now
        await self.db.commit()
        logger.info(f"Alert {alert.id} declined")

        await refresh_station_flags(self.db, alert.station_id, alerts=True, keep=(alert,))
        await self._publish_update(alert)
        return alert

    async def refer(
        self, alert_id: uuid.UUID, station_id: str | None, reason: str | None
    ) -> EmergencyAlert:
        """
        Hand an alert over to another station.

        The alert moves to the target station and loses its department and
        unit, which the receiving station assigns again.
        """
        if not station_id:
            raise ValidationError("Station ID is required")
        target_id = parse_id(station_id, "station")
        if not reason or not reason.strip():
            raise ValidationError("Refer reason is required")

        target = await self.db.get(Station, target_id)
        if target is None:
            raise NotFoundError("Referred station not found")

        alert = await self.get(alert_id)
        self._ensure_open(alert, "referred")
        if alert.station_id == target.id:
            raise ValidationError("Cannot refer emergency alert to the same station")

        origin = await self.db.get(Station, alert.station_id)
        now = self.clock()
        alert.referred = True
        alert.referred_at = now
        alert.referred_to_station_id = target.id
        alert.refer_reason = reason.strip()
        alert.status = ALERT_REFERRED
        alert.station_id = target.id
        alert.department_id = None
        alert.unit_id = None
        alert.updated_at = now
        await self.db.commit()
        logger.info(f"Alert {alert.id} referred from station {origin.id if origin else None} to {target.id}")

        keep = tuple(obj for obj in (alert, origin, target) if obj is not None)
        if origin is not None:
            await refresh_station_flags(self.db, origin.id, alerts=True, keep=keep)
        await refresh_station_flags(self.db, target.id, alerts=True, keep=keep)

        await self._publish_update(alert)
        await self.fanout.referral_created(
            ALERT_DATA_TYPE, alert.id, origin, target, alert.refer_reason, alert.referred_at
        )
        return alert

    async def update(self, alert_id: uuid.UUID, patch: AlertUpdate) -> EmergencyAlert:
        """
        Merge a partial update into an open alert.

        A status change into an outcome applies that outcome's flag and
        timestamp; moving into `accepted` also materializes the incident.
        Moving into `referred` needs a different target station and a reason,
        and notifies the target like `refer()` does.
        """
        alert = await self.get(alert_id)
        self._ensure_open(alert, "updated")

        fields = patch.model_dump(exclude_unset=True)
        new_status = normalize_status(patch.status)
        current_status = normalize_status(alert.status)
        if new_status is not None and new_status not in ALERT_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(ALERT_STATUSES)}")

        # A referral through update carries the same requirements as refer()
        target = None
        if new_status == ALERT_REFERRED:
            if not patch.referred_to_station:
                raise ValidationError("Station ID is required")
            target_id = parse_id(patch.referred_to_station, "station")
            if not patch.refer_reason or not patch.refer_reason.strip():
                raise ValidationError("Refer reason is required")
            target = await self.db.get(Station, target_id)
            if target is None:
                raise NotFoundError("Referred station not found")
            if alert.station_id == target.id:
                raise ValidationError("Cannot refer emergency alert to the same station")

        for name in PATCHABLE_FIELDS:
            if name in fields:
                setattr(alert, name, fields[name])

        if patch.location is not None:
            alert.location_name = patch.location.location_name
            alert.location_url = patch.location.location_url
            alert.latitude = patch.location.coordinates.latitude
            alert.longitude = patch.location.coordinates.longitude

        if "department_id" in fields:
            alert.department_id = None
            if patch.department_id:
                department_id = parse_id(patch.department_id, "department")
                if await self.db.get(Department, department_id) is None:
                    raise NotFoundError("Department not found")
                alert.department_id = department_id
        if "unit_id" in fields:
            alert.unit_id = None
            if patch.unit_id:
                unit_id = parse_id(patch.unit_id, "unit")
                if await self.db.get(Unit, unit_id) is None:
                    raise NotFoundError("Unit not found")
                alert.unit_id = unit_id

        if patch.decline_reason is not None:
            alert.decline_reason = patch.decline_reason.strip()
        if patch.refer_reason is not None:
            alert.refer_reason = patch.refer_reason.strip()

        origin_station_id = alert.station_id
        now = self.clock()
        materialize = False

        if new_status == ALERT_ACCEPTED and current_status != ALERT_ACCEPTED:
            alert.dispatched = True
            alert.dispatched_at = patch.dispatched_at or now
            materialize = True
        elif new_status == ALERT_REJECTED:
            alert.declined = True
            alert.declined_at = patch.declined_at or now
        elif new_status == ALERT_REFERRED:
            alert.referred = True
            alert.referred_at = patch.referred_at or now
            alert.referred_to_station_id = target.id
            alert.station_id = target.id
            alert.department_id = None
            alert.unit_id = None

        if new_status is not None:
            alert.status = new_status
        alert.updated_at = now
        await self.db.commit()
        logger.info(f"Alert {alert.id} updated ({current_status} -> {alert.status})")

        if materialize:
            await self._materialize(alert)

        await refresh_station_flags(self.db, alert.station_id, alerts=True, keep=(alert,))
        if origin_station_id != alert.station_id:
            await refresh_station_flags(self.db, origin_station_id, alerts=True, keep=(alert,))

        await self._publish_update(alert)
        if target is not None:
            origin = await self.db.get(Station, origin_station_id)
            await self.fanout.referral_created(
                ALERT_DATA_TYPE, alert.id, origin, target, alert.refer_reason, alert.referred_at
            )
        return alert

    async def delete(self, alert_id: uuid.UUID) -> None:
        """Remove an alert together with the incidents raised from it."""
        alert = await self.get(alert_id)
        station_id = alert.station_id

        await self.db.execute(delete(Incident).where(Incident.alert_id == alert.id))
        await self.db.delete(alert)
        await self.db.commit()
        logger.info(f"Alert {alert_id} deleted")

        await refresh_station_flags(self.db, station_id, alerts=True, incidents=True)
        await self.fanout.alert_deleted(alert_id, station_id)

    async def list_alerts(
        self,
        *,
        station_id: uuid.UUID | None = None,
        reporter_id: uuid.UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[EmergencyAlert], Pagination]:
        """Most recently reported first, paginated."""
        filters = []
        if station_id:
            filters.append(EmergencyAlert.station_id == station_id)
        if reporter_id:
            filters.append(EmergencyAlert.reporter_id == reporter_id)
        if status:
            filters.append(EmergencyAlert.status == normalize_status(status))
        if priority:
            filters.append(EmergencyAlert.priority == priority)

        total = (
            await self.db.execute(select(func.count()).select_from(EmergencyAlert).where(*filters))
        ).scalar_one()

        result = await self.db.execute(
            select(EmergencyAlert)
            .where(*filters)
            .order_by(EmergencyAlert.reported_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        pagination = Pagination(current=page, pages=math.ceil(total / limit), total=total)
        return list(result.scalars().all()), pagination

    async def stats(
        self,
        *,
        station_id: uuid.UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AlertStats:
        """Counts by status, priority and incident type."""
        filters = []
        if station_id:
            filters.append(EmergencyAlert.station_id == station_id)
        if start:
            filters.append(EmergencyAlert.reported_at >= start)
        if end:
            filters.append(EmergencyAlert.reported_at <= end)

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        result = await self.db.execute(
            select(
                func.count().label("total_alerts"),
                count_where(EmergencyAlert.status == "active").label("active_alerts"),
                count_where(EmergencyAlert.status == "accepted").label("accepted_alerts"),
                count_where(EmergencyAlert.status == "rejected").label("rejected_alerts"),
                count_where(EmergencyAlert.status == "referred").label("referred_alerts"),
                count_where(EmergencyAlert.priority == "high").label("high_priority_alerts"),
                count_where(EmergencyAlert.priority == "medium").label("medium_priority_alerts"),
                count_where(EmergencyAlert.priority == "low").label("low_priority_alerts"),
                count_where(EmergencyAlert.incident_type == "fire").label("fire_incidents"),
                count_where(EmergencyAlert.incident_type == "rescue").label("rescue_incidents"),
                count_where(EmergencyAlert.incident_type == "medical").label("medical_incidents"),
                count_where(EmergencyAlert.incident_type == "other").label("other_incidents"),
            )
            .select_from(EmergencyAlert)
            .where(*filters)
        )
        return AlertStats(**result.one()._mapping)
