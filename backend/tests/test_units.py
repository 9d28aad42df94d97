"""Tests for unit duty scheduling."""

import uuid
from datetime import UTC, datetime

import pytest

from fireops.errors import ConflictError, NotFoundError, ValidationError
from fireops.models import Unit
from fireops.services import UnitScheduler


class TestActivate:
    """Tests for UnitScheduler.activate."""

    @pytest.mark.asyncio
    async def test_activate(self, units, red_watch, clock):
        unit = await units.activate(red_watch.id)

        assert unit.is_active is True
        assert unit.activated_at == clock()

    @pytest.mark.asyncio
    async def test_second_unit_in_department(self, units, red_watch, blue_watch):
        await units.activate(red_watch.id)

        with pytest.raises(ConflictError) as exc_info:
            await units.activate(blue_watch.id)

        assert "Red Watch" in exc_info.value.message
        assert exc_info.value.detail["activeUnit"] == {"id": str(red_watch.id), "name": "Red Watch"}

    @pytest.mark.asyncio
    async def test_non_operations_unit(self, db_session, units, administration):
        unit = Unit(name="Clerks", color="#9e9e9e", department_id=administration.id)
        db_session.add(unit)
        await db_session.commit()

        with pytest.raises(ValidationError, match="Operations"):
            await units.activate(unit.id)

    @pytest.mark.asyncio
    async def test_unknown_unit(self, units):
        with pytest.raises(NotFoundError):
            await units.activate(uuid.uuid4())


class TestDeactivate:
    """Tests for UnitScheduler.deactivate."""

    @pytest.mark.asyncio
    async def test_refused_before_next_morning(self, units, red_watch, clock):
        await units.activate(red_watch.id)
        clock.advance(hours=20)

        with pytest.raises(ConflictError) as exc_info:
            await units.deactivate(red_watch.id)

        assert exc_info.value.detail["nextDeactivationTime"] == "2024-01-19T07:00:00+00:00"
        assert exc_info.value.detail["activatedAt"] == "2024-01-18T10:00:00+00:00"
        assert red_watch.is_active is True

    @pytest.mark.asyncio
    async def test_allowed_after_threshold(self, units, red_watch, clock):
        await units.activate(red_watch.id)
        clock.now = datetime(2024, 1, 19, 7, 1, tzinfo=UTC)

        unit = await units.deactivate(red_watch.id)

        assert unit.is_active is False
        assert unit.activated_at is None

    @pytest.mark.asyncio
    async def test_threshold_uses_local_time(self, db_session, red_watch, clock):
        """Accra is UTC+0 but Lagos is UTC+1, so 07:00 there is 06:00 UTC."""
        clock.now = datetime(2024, 1, 19, 6, 30, tzinfo=UTC)
        red_watch.is_active = True
        red_watch.activated_at = datetime(2024, 1, 18, 10, 0, tzinfo=UTC)
        await db_session.commit()

        scheduler = UnitScheduler(db_session, clock=clock, tz="Africa/Lagos", manual_hour=7)
        unit = await scheduler.deactivate(red_watch.id)

        assert unit.is_active is False

    @pytest.mark.asyncio
    async def test_never_activated(self, units, red_watch):
        unit = await units.deactivate(red_watch.id)

        assert unit.is_active is False


class TestAutoDeactivateSweep:
    """Tests for UnitScheduler.auto_deactivate_sweep."""

    @pytest.mark.asyncio
    async def test_sweep(self, db_session, units, on_duty, clock):
        late = Unit(
            name="Green Watch",
            color="#388e3c",
            department_id=on_duty.department_id,
            is_active=True,
            activated_at=datetime(2024, 1, 19, 6, 0, tzinfo=UTC),
        )
        db_session.add(late)
        await db_session.commit()
        clock.now = datetime(2024, 1, 19, 8, 0, tzinfo=UTC)

        result = await units.auto_deactivate_sweep()

        assert result.deactivated_count == 1
        swept = result.deactivated_units[0]
        assert swept.unit_id == on_duty.id
        assert swept.unit_name == "Red Watch"
        assert swept.department == "Operations"
        assert swept.activated_at == datetime(2024, 1, 18, 10, 0, tzinfo=UTC)

        await db_session.refresh(on_duty)
        await db_session.refresh(late)
        assert on_duty.is_active is False
        assert late.is_active is True

    @pytest.mark.asyncio
    async def test_nothing_to_sweep(self, units, on_duty):
        result = await units.auto_deactivate_sweep()

        assert result.deactivated_count == 0
        assert result.deactivated_units == []

    @pytest.mark.asyncio
    async def test_failure_on_one_unit_continues(
        self, db_session, units, on_duty, blue_watch, clock, monkeypatch, caplog
    ):
        blue_watch.is_active = True
        blue_watch.activated_at = datetime(2024, 1, 18, 9, 0, tzinfo=UTC)
        await db_session.commit()
        clock.now = datetime(2024, 1, 19, 9, 0, tzinfo=UTC)

        commit = db_session.commit
        calls = []

        async def flaky_commit():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("database is locked")
            await commit()

        monkeypatch.setattr(db_session, "commit", flaky_commit)

        result = await units.auto_deactivate_sweep()

        assert result.deactivated_count == 1
        assert "Failed to auto-deactivate unit" in caplog.text


class TestActiveUnitForDepartment:
    """Tests for UnitScheduler.active_unit_for_department."""

    @pytest.mark.asyncio
    async def test_returns_on_duty_unit(self, units, operations, on_duty, blue_watch):
        unit = await units.active_unit_for_department(operations.id)

        assert unit.id == on_duty.id
        assert unit.is_active is True

    @pytest.mark.asyncio
    async def test_none_on_duty(self, units, operations, red_watch):
        assert await units.active_unit_for_department(operations.id) is None
