"""Incident lifecycle: materialization, status transitions and referral."""

import logging
import math
import uuid
from datetime import datetime
from statistics import mean

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.config import get_settings
from fireops.errors import ConflictError, NotFoundError, ValidationError
from fireops.models import Department, EmergencyAlert, Incident, Station, Unit
from fireops.models.incident import (
    INCIDENT_DISPATCHED,
    INCIDENT_FLOW,
    INCIDENT_PENDING,
    INCIDENT_REFERRED,
    INCIDENT_STATUSES,
    STATUS_TIMESTAMP_FIELDS,
    TERMINAL_INCIDENT_STATUSES,
)
from fireops.notifications import NotificationFanout
from fireops.schemas.common import Pagination, parse_id
from fireops.schemas.incident import IncidentCreate, IncidentStats, IncidentUpdate
from fireops.services.reporters import load_reporter
from fireops.services.stations import refresh_station_flags
from fireops.services.turnout_slip import SlipContext, TurnoutSlipGenerator
from fireops.services.units import UnitScheduler
from fireops.timeutils import Clock, minutes_between, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

INCIDENT_DATA_TYPE = "incident"


def normalize_status(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip().lower()


def check_transition(current: str, target: str) -> None:
    """
    Enforce forward-only movement through the incident flow.

    Re-entering the current status is allowed. `referred` may be entered from
    any open status. Nothing leaves `closed` or `referred`.
    """
    if target == current:
        return
    if current in TERMINAL_INCIDENT_STATUSES:
        raise ConflictError(f"Incident is already {current} and can no longer change status")
    if target == INCIDENT_REFERRED:
        return
    if INCIDENT_FLOW.index(target) < INCIDENT_FLOW.index(current):
        raise ConflictError(f"Incident cannot move back from {current} to {target}")


class IncidentLifecycle:
    """
    State machine for incidents created from accepted alerts.

    Primary mutations are committed before dependent side effects run (station
    flag recompute, fan-out), so those can fail without undoing the change.
    """

    def __init__(
        self,
        db: AsyncSession,
        fanout: NotificationFanout,
        slip_generator: TurnoutSlipGenerator | None = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.fanout = fanout
        self.clock = clock
        self.slip_generator = slip_generator or TurnoutSlipGenerator(clock)

    async def get(self, incident_id: uuid.UUID) -> Incident:
        incident = await self.db.get(Incident, incident_id)
        if incident is None:
            raise NotFoundError("Incident not found")
        return incident

    async def _get_alert(self, alert_id: uuid.UUID) -> EmergencyAlert:
        alert = await self.db.get(EmergencyAlert, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        return alert

    async def _get_station(self, station_id: uuid.UUID) -> Station:
        station = await self.db.get(Station, station_id)
        if station is None:
            raise NotFoundError("Station not found")
        return station

    async def _get_department(self, department_id: uuid.UUID) -> Department:
        department = await self.db.get(Department, department_id)
        if department is None:
            raise NotFoundError("Department not found")
        return department

    async def _get_unit(self, unit_id: uuid.UUID) -> Unit:
        unit = await self.db.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("Unit not found")
        return unit

    async def _generate_slip(self, incident: Incident) -> None:
        """Attach a turnout slip. Failures are logged and leave the slip empty."""
        try:
            alert = await self._get_alert(incident.alert_id)
            context = SlipContext(
                incident=incident,
                alert=alert,
                reporter=await load_reporter(self.db, alert.reporter_id, alert.reporter_type),
                station=await self.db.get(Station, incident.station_id),
                department=await self.db.get(Department, incident.department_id),
                unit=await self.db.get(Unit, incident.unit_id),
            )
            incident.turnout_slip = self.slip_generator.generate(context)
            logger.info(f"Turnout slip generated for incident {incident.id}")
        except Exception as e:
            logger.error(f"Failed to generate turnout slip for incident {incident.id}: {e}", exc_info=True)

    async def _apply_status(
        self, incident: Incident, status: str, timestamp: datetime | None = None
    ) -> bool:
        """
        Move `incident` into `status` and run the entry side effects.

        Operational timestamps are first-write-wins; `timestamp` overrides now.

        Returns:
            True if this call moved the incident into `dispatched`.
        """
        check_transition(incident.status, status)

        entered_dispatched = status == INCIDENT_DISPATCHED and incident.status != INCIDENT_DISPATCHED
        at = timestamp or self.clock()

        field = STATUS_TIMESTAMP_FIELDS.get(status)
        if field and getattr(incident, field) is None:
            setattr(incident, field, at)
        if status == INCIDENT_REFERRED:
            incident.referred = True
        if status == INCIDENT_DISPATCHED and not incident.turnout_slip:
            await self._generate_slip(incident)

        incident.status = status
        return entered_dispatched

    async def _after_write(self, incident: Incident) -> None:
        await refresh_station_flags(
            self.db, incident.station_id, incidents=True, keep=(incident,)
        )

    async def materialize(self, alert_id: uuid.UUID, station_id: uuid.UUID) -> Incident:
        """
        Create the `pending` incident for an accepted alert.

        Binds it to the station's operations department and that department's
        on-duty unit.

        Raises:
            NotFoundError: no operations department at the station
            ValidationError: no unit of that department is on duty
        """
        alert = await self._get_alert(alert_id)

        result = await self.db.execute(
            select(Department)
            .where(
                Department.station_id == station_id,
                func.lower(Department.name).contains(settings.operations_department_name),
            )
            .limit(1)
        )
        department = result.scalar_one_or_none()
        if department is None:
            raise NotFoundError(f"Operations department not found for station {station_id}")

        unit = await UnitScheduler(self.db, clock=self.clock).active_unit_for_department(department.id)
        if unit is None:
            raise ValidationError(
                f"No active unit found in Operations department {department.name}"
            )

        now = self.clock()
        incident = Incident(
            id=uuid.uuid4(),
            alert_id=alert.id,
            station_id=station_id,
            department_id=department.id,
            unit_id=unit.id,
            status=INCIDENT_PENDING,
            created_at=now,
            updated_at=now,
        )
        self.db.add(incident)
        await self.db.commit()
        logger.info(f"Incident {incident.id} created for alert {alert.id} (unit {unit.name})")

        await self._after_write(incident)
        await self.fanout.incident_created(incident, alert)
        return incident

    async def create(self, data: IncidentCreate) -> Incident:
        """Manual incident creation with an explicit department and unit."""
        alert_id = parse_id(data.alert_id, "alert")
        department_id = parse_id(data.department_on_duty, "department")
        unit_id = parse_id(data.unit_on_duty, "unit")

        status = normalize_status(data.status) or INCIDENT_PENDING
        if status not in INCIDENT_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(INCIDENT_STATUSES)}")

        alert = await self._get_alert(alert_id)
        station = await self._get_station(alert.station_id)
        if not station.in_commission:
            raise ValidationError("Cannot create incident: Station is out of commission")
        await self._get_department(department_id)
        await self._get_unit(unit_id)

        now = self.clock()
        incident = Incident(
            id=uuid.uuid4(),
            alert_id=alert.id,
            station_id=station.id,
            department_id=department_id,
            unit_id=unit_id,
            status=INCIDENT_PENDING,
            created_at=now,
            updated_at=now,
        )
        self.db.add(incident)
        if status != INCIDENT_PENDING:
            await self._apply_status(incident, status)
        await self.db.commit()

        await self._after_write(incident)
        await self.fanout.incident_created(incident, alert)
        return incident

    async def set_status(
        self, incident_id: uuid.UUID, status: str | None, timestamp: datetime | None = None
    ) -> Incident:
        """
        Change an incident's status.

        Raises:
            ValidationError: missing or unknown status
            NotFoundError: unknown incident
            ConflictError: backward move or leaving a terminal status
        """
        status = normalize_status(status)
        if not status:
            raise ValidationError("Status is required")
        if status not in INCIDENT_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(INCIDENT_STATUSES)}")

        incident = await self.get(incident_id)
        entered_dispatched = await self._apply_status(incident, status, timestamp)
        incident.updated_at = self.clock()
        await self.db.commit()

        await self._after_write(incident)
        alert = await self.db.get(EmergencyAlert, incident.alert_id)
        await self.fanout.incident_updated(incident, alert, entered_dispatched)
        return incident

    async def update(self, incident_id: uuid.UUID, patch: IncidentUpdate) -> Incident:
        """Reassign department/unit and/or change status."""
        incident = await self.get(incident_id)

        if patch.department_on_duty is not None:
            department = await self._get_department(parse_id(patch.department_on_duty, "department"))
            incident.department_id = department.id
        if patch.unit_on_duty is not None:
            unit = await self._get_unit(parse_id(patch.unit_on_duty, "unit"))
            incident.unit_id = unit.id

        entered_dispatched = False
        status = normalize_status(patch.status)
        if status:
            if status not in INCIDENT_STATUSES:
                raise ValidationError(f"Status must be one of: {', '.join(INCIDENT_STATUSES)}")
            entered_dispatched = await self._apply_status(incident, status, patch.timestamp)

        incident.updated_at = self.clock()
        await self.db.commit()

        await self._after_write(incident)
        alert = await self.db.get(EmergencyAlert, incident.alert_id)
        await self.fanout.incident_updated(incident, alert, entered_dispatched)
        return incident

    async def refer(
        self, incident_id: uuid.UUID, station_id: str | None, reason: str | None
    ) -> Incident:
        """
        Hand an incident over to another station.

        Re-referring to the same station only updates the reason.
        """
        if not station_id:
            raise ValidationError("Station ID is required")
        target_id = parse_id(station_id, "station")
        if not reason or not reason.strip():
            raise ValidationError("Refer reason is required")

        incident = await self.get(incident_id)
        target = await self.db.get(Station, target_id)
        if target is None:
            raise NotFoundError("Referred station not found")
        if target.id == incident.station_id:
            raise ValidationError("Cannot refer incident to the same station")
        origin = await self.db.get(Station, incident.station_id)

        if incident.status == INCIDENT_REFERRED:
            if incident.referred_to_station_id != target.id:
                raise ConflictError("Incident has already been referred to another station")
            incident.refer_reason = reason.strip()
            incident.updated_at = self.clock()
            await self.db.commit()
            await self.fanout.referral_updated(
                INCIDENT_DATA_TYPE, incident.id, origin, target, incident.refer_reason, incident.referred_at
            )
            return incident

        await self._apply_status(incident, INCIDENT_REFERRED)
        incident.referred_to_station_id = target.id
        incident.refer_reason = reason.strip()
        incident.updated_at = self.clock()
        await self.db.commit()
        logger.info(f"Incident {incident.id} referred to station {target.id}")

        await self._after_write(incident)
        alert = await self.db.get(EmergencyAlert, incident.alert_id)
        await self.fanout.incident_updated(incident, alert)
        await self.fanout.referral_created(
            INCIDENT_DATA_TYPE, incident.id, origin, target, incident.refer_reason, incident.referred_at
        )
        return incident

    async def delete(self, incident_id: uuid.UUID) -> None:
        incident = await self.get(incident_id)
        station_id = incident.station_id

        await self.db.delete(incident)
        await self.db.commit()

        await refresh_station_flags(self.db, station_id, incidents=True)
        await self.fanout.incident_deleted(incident_id, station_id)

    async def list_incidents(
        self,
        *,
        status: str | None = None,
        station_id: uuid.UUID | None = None,
        department_id: uuid.UUID | None = None,
        unit_id: uuid.UUID | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Incident], Pagination]:
        """Newest first, paginated."""
        filters = []
        if status:
            filters.append(Incident.status == normalize_status(status))
        if station_id:
            filters.append(Incident.station_id == station_id)
        if department_id:
            filters.append(Incident.department_id == department_id)
        if unit_id:
            filters.append(Incident.unit_id == unit_id)

        total = (
            await self.db.execute(select(func.count()).select_from(Incident).where(*filters))
        ).scalar_one()

        result = await self.db.execute(
            select(Incident)
            .where(*filters)
            .order_by(Incident.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        pagination = Pagination(current=page, pages=math.ceil(total / limit), total=total)
        return list(result.scalars().all()), pagination

    async def by_alert(self, alert_id: uuid.UUID) -> list[Incident]:
        """All incidents raised from one alert, newest first."""
        result = await self.db.execute(
            select(Incident)
            .where(Incident.alert_id == alert_id)
            .order_by(Incident.created_at.desc())
        )
        incidents = list(result.scalars().all())
        if not incidents:
            raise NotFoundError("Incident not found for this alert")
        return incidents

    async def stats(
        self,
        *,
        department_id: uuid.UUID | None = None,
        unit_id: uuid.UUID | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> IncidentStats:
        filters = []
        if department_id:
            filters.append(Incident.department_id == department_id)
        if unit_id:
            filters.append(Incident.unit_id == unit_id)
        if start:
            filters.append(Incident.created_at >= start)
        if end:
            filters.append(Incident.created_at <= end)

        result = await self.db.execute(
            select(Incident.status, func.count()).where(*filters).group_by(Incident.status)
        )
        counts = dict(result.all())

        # Durations are averaged here rather than in SQL to stay dialect neutral
        result = await self.db.execute(
            select(Incident.dispatched_at, Incident.arrived_at, Incident.resolved_at).where(
                *filters, Incident.arrived_at.is_not(None)
            )
        )
        response_times = []
        resolution_times = []
        for dispatched_at, arrived_at, resolved_at in result.all():
            if dispatched_at is not None:
                response_times.append(minutes_between(dispatched_at, arrived_at))
            if resolved_at is not None:
                resolution_times.append(minutes_between(arrived_at, resolved_at))

        return IncidentStats(
            total_incidents=sum(counts.values()),
            pending_incidents=counts.get("pending", 0),
            active_incidents=counts.get("active", 0),
            dispatched_incidents=counts.get("dispatched", 0),
            on_scene_incidents=counts.get("on_scene", 0),
            resolved_incidents=counts.get("resolved", 0),
            closed_incidents=counts.get("closed", 0),
            referred_incidents=counts.get("referred", 0),
            avg_response_time=mean(response_times) if response_times else None,
            avg_resolution_time=mean(resolution_times) if resolution_times else None,
        )
