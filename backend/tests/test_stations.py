"""Tests for station flag maintenance and time helpers."""

import uuid
from datetime import UTC, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from fireops.services.stations import refresh_station_flags
from fireops.timeutils import ensure_utc, minutes_between, next_day_at


class TestRefreshStationFlags:
    """Tests for refresh_station_flags."""

    @pytest.mark.asyncio
    async def test_recomputes_from_counts(
        self, db_session, station, operations, red_watch, make_alert, make_incident
    ):
        alert = await make_alert(station, status="pending")
        await make_incident(alert, operations, red_watch, status="on_scene")

        written = await refresh_station_flags(db_session, station.id, alerts=True, incidents=True)

        assert written is True
        await db_session.refresh(station)
        assert station.has_active_alert is True
        assert station.has_active_incident is True

    @pytest.mark.asyncio
    async def test_heals_stale_flags(self, db_session, station, operations, red_watch, make_alert, make_incident):
        alert = await make_alert(station, status="rejected", declined=True)
        await make_incident(alert, operations, red_watch, status="referred")
        station.has_active_alert = True
        station.has_active_incident = True
        await db_session.commit()

        await refresh_station_flags(db_session, station.id, alerts=True, incidents=True)

        await db_session.refresh(station)
        assert station.has_active_alert is False
        assert station.has_active_incident is False

    @pytest.mark.asyncio
    async def test_only_requested_flag_changes(self, db_session, station, make_alert):
        await make_alert(station)
        station.has_active_incident = True
        await db_session.commit()

        await refresh_station_flags(db_session, station.id, alerts=True)

        await db_session.refresh(station)
        assert station.has_active_alert is True
        assert station.has_active_incident is True

    @pytest.mark.asyncio
    async def test_unknown_station(self, db_session):
        assert await refresh_station_flags(db_session, uuid.uuid4(), alerts=True) is False
        assert await refresh_station_flags(db_session, None, alerts=True) is False

    @pytest.mark.asyncio
    async def test_failure_is_contained(self, db_session, station, make_alert, monkeypatch, caplog):
        alert = await make_alert(station)

        async def broken_commit():
            raise RuntimeError("disk full")

        monkeypatch.setattr(db_session, "commit", broken_commit)

        written = await refresh_station_flags(db_session, station.id, alerts=True, keep=(alert,))

        assert written is False
        assert alert.status == "active"
        assert "Failed to refresh flags" in caplog.text


class TestTimeHelpers:
    """Tests for fireops.timeutils."""

    def test_ensure_utc_naive(self):
        assert ensure_utc(datetime(2024, 1, 18, 10, 0)) == datetime(2024, 1, 18, 10, 0, tzinfo=UTC)

    def test_ensure_utc_converts_offset(self):
        value = datetime(2024, 1, 18, 11, 0, tzinfo=timezone(timedelta(hours=1)))

        assert ensure_utc(value) == datetime(2024, 1, 18, 10, 0, tzinfo=UTC)

    def test_next_day_at_crosses_midnight_locally(self):
        """23:30 UTC is already the next day in Lagos."""
        value = datetime(2024, 1, 18, 23, 30, tzinfo=UTC)

        threshold = next_day_at(value, 7, ZoneInfo("Africa/Lagos"))

        assert threshold == datetime(2024, 1, 20, 6, 0, tzinfo=UTC)

    def test_minutes_between(self):
        start = datetime(2024, 1, 18, 10, 0, tzinfo=UTC)

        assert minutes_between(start, start + timedelta(minutes=42)) == 42
        assert minutes_between(start, None) is None
