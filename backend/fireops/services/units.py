"""On/off duty scheduling for operations units."""

import logging
import uuid
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fireops.config import get_settings
from fireops.errors import ConflictError, NotFoundError, ValidationError
from fireops.models import Department, Unit
from fireops.schemas.unit import DeactivatedUnit, SweepResult
from fireops.timeutils import Clock, ensure_utc, isoformat, next_day_at, utcnow

logger = logging.getLogger(__name__)
settings = get_settings()


class UnitScheduler:
    """
    Activation state machine for duty units.

    A unit goes on duty explicitly and may only be stood down after
    `manual_hour` local time on the day after activation. The daily sweep
    stands down any unit still on duty past `auto_hour` of that day.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utcnow,
        tz: str | None = None,
        manual_hour: int | None = None,
        auto_hour: int | None = None,
    ):
        self.db = db
        self.clock = clock
        self.tz = ZoneInfo(tz or settings.timezone)
        self.manual_hour = settings.manual_deactivation_hour if manual_hour is None else manual_hour
        self.auto_hour = settings.auto_deactivation_hour if auto_hour is None else auto_hour

    async def _get_unit(self, unit_id: uuid.UUID) -> Unit:
        unit = await self.db.get(Unit, unit_id)
        if unit is None:
            raise NotFoundError("Unit not found")
        return unit

    async def activate(self, unit_id: uuid.UUID) -> Unit:
        """
        Put a unit on duty.

        Raises:
            NotFoundError: unknown unit
            ValidationError: unit is not in the operations department
            ConflictError: another unit of the department is already on duty
        """
        unit = await self._get_unit(unit_id)

        department = await self.db.get(Department, unit.department_id)
        if department is None or department.name.strip().lower() != settings.operations_department_name:
            raise ValidationError("Only Operations department units can be activated")

        result = await self.db.execute(
            select(Unit).where(
                Unit.department_id == unit.department_id,
                Unit.is_active.is_(True),
                Unit.id != unit.id,
            )
        )
        active_unit = result.scalars().first()
        if active_unit is not None:
            raise ConflictError(
                f"Another unit ({active_unit.name}) is already active in this department. "
                "Only one unit can be active at a time.",
                detail={"activeUnit": {"id": str(active_unit.id), "name": active_unit.name}},
            )

        now = self.clock()
        unit.is_active = True
        unit.activated_at = now
        unit.updated_at = now
        await self.db.commit()

        logger.info(f"Unit {unit.name} ({unit.id}) on duty")
        return unit

    async def deactivate(self, unit_id: uuid.UUID) -> Unit:
        """
        Take a unit off duty.

        Units that were never activated are cleared straight away. Otherwise
        the call is refused until the manual threshold has passed.
        """
        unit = await self._get_unit(unit_id)
        now = self.clock()

        if unit.activated_at is not None:
            threshold = next_day_at(unit.activated_at, self.manual_hour, self.tz)
            if ensure_utc(now) < threshold:
                local = threshold.astimezone(self.tz)
                raise ConflictError(
                    f"Unit can only be deactivated after {self.manual_hour}:00 the next day. "
                    f"Next deactivation time: {local.strftime('%Y-%m-%d %H:%M %Z')}",
                    detail={
                        "nextDeactivationTime": isoformat(threshold),
                        "activatedAt": isoformat(unit.activated_at),
                    },
                )

        unit.is_active = False
        unit.activated_at = None
        unit.updated_at = now
        await self.db.commit()

        logger.info(f"Unit {unit.name} ({unit.id}) off duty")
        return unit

    async def auto_deactivate_sweep(self) -> SweepResult:
        """
        Stand down every unit whose shift ended at `auto_hour` the next day.

        Each unit is committed on its own; a failure on one unit is logged and
        the sweep moves on. Only a failure of the initial scan propagates.
        """
        logger.info("Running automatic unit deactivation")

        result = await self.db.execute(
            select(Unit.id, Unit.name, Unit.activated_at, Department.name)
            .outerjoin(Department, Department.id == Unit.department_id)
            .where(Unit.is_active.is_(True))
        )
        candidates = result.all()

        now = ensure_utc(self.clock())
        deactivated: list[DeactivatedUnit] = []

        for unit_id, unit_name, activated_at, department_name in candidates:
            if activated_at is None:
                continue
            if now < next_day_at(activated_at, self.auto_hour, self.tz):
                continue

            try:
                unit = await self.db.get(Unit, unit_id)
                if unit is None or not unit.is_active:
                    continue
                unit.is_active = False
                unit.activated_at = None
                unit.updated_at = now
                await self.db.commit()
            except Exception as e:
                logger.error(f"Failed to auto-deactivate unit {unit_name} ({unit_id}): {e}", exc_info=True)
                await self.db.rollback()
                continue

            deactivated.append(
                DeactivatedUnit(
                    unit_id=unit_id,
                    unit_name=unit_name,
                    department=department_name,
                    activated_at=ensure_utc(activated_at),
                )
            )
            logger.info(f"Auto-deactivated unit: {unit_name} ({unit_id})")

        if deactivated:
            logger.info(f"Automatically deactivated {len(deactivated)} unit(s)")
        else:
            logger.info("No units needed automatic deactivation")

        return SweepResult(deactivated_count=len(deactivated), deactivated_units=deactivated)

    async def active_unit_for_department(self, department_id: uuid.UUID) -> Unit | None:
        """The department's on-duty unit, if any."""
        result = await self.db.execute(
            select(Unit)
            .where(Unit.department_id == department_id, Unit.is_active.is_(True))
            .order_by(Unit.activated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
