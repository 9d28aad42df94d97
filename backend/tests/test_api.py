"""Tests for API endpoints."""

import json
import uuid
from unittest.mock import MagicMock

import pytest

from fireops.main import global_exception_handler
from fireops.notifications.publisher import station_room

API = "/api"


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client, station, on_duty, make_alert):
        """Test health endpoint returns status and live counts."""
        await make_alert(station)

        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["open_alerts"] == 1
        assert data["live_incidents"] == 0
        assert data["units_on_duty"] == 1

    @pytest.mark.asyncio
    async def test_readiness_and_liveness(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Fire Dispatch API"
        assert "version" in data
        assert "docs" in data


class TestAlertEndpoints:
    """Tests for /api/emergency/alerts."""

    @pytest.mark.asyncio
    async def test_create_alert(self, client, publisher, station, reporter, alert_body):
        response = await client.post(f"{API}/emergency/alerts", json=alert_body(station, reporter))

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Emergency alert created successfully"
        data = body["data"]
        assert data["status"] == "active"
        assert data["stationId"] == str(station.id)
        assert data["reporterType"] == "User"
        assert data["dispatched"] is False
        assert "alert_created" in publisher.names()

    @pytest.mark.asyncio
    async def test_create_alert_missing_fields(self, client, station, reporter, alert_body):
        body = alert_body(station, reporter)
        del body["incidentType"]

        response = await client.post(f"{API}/emergency/alerts", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Validation error"
        assert any("incidentType" in error for error in data["errors"])

    @pytest.mark.asyncio
    async def test_create_alert_bad_user_id(self, client, station, alert_body):
        response = await client.post(f"{API}/emergency/alerts", json=alert_body(station, "12345"))

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid user ID format"

    @pytest.mark.asyncio
    async def test_create_alert_busy_station(
        self, client, db_session, station, operations, red_watch, reporter, alert_body, make_alert, make_incident
    ):
        busy = await make_alert(station, status="accepted", dispatched=True)
        incident = await make_incident(busy, operations, red_watch, status="dispatched")
        station.has_active_incident = True
        await db_session.commit()

        response = await client.post(f"{API}/emergency/alerts", json=alert_body(station, reporter))

        assert response.status_code == 409
        data = response.json()
        assert data["success"] is False
        assert data["reason"] == "station_busy"
        assert data["activeIncidentId"] == str(incident.id)
        assert data["activeIncidentDetails"]["unit"] == "Red Watch"
        assert data["stationStatus"]["hasActiveIncident"] is True

    @pytest.mark.asyncio
    async def test_get_unknown_alert(self, client):
        response = await client.get(f"{API}/emergency/alerts/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Emergency alert not found",
            "reason": "not_found",
        }

    @pytest.mark.asyncio
    async def test_get_alert_bad_id(self, client):
        response = await client.get(f"{API}/emergency/alerts/not-a-uuid")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_dispatch_alert(self, client, station, operations, on_duty, make_alert):
        alert = await make_alert(station)

        response = await client.patch(f"{API}/emergency/alerts/{alert.id}/dispatch")

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "accepted"

        response = await client.get(f"{API}/incidents/alert/{alert.id}")
        assert response.status_code == 200
        incidents = response.json()["data"]
        assert len(incidents) == 1
        assert incidents[0]["unitId"] == str(on_duty.id)

    @pytest.mark.asyncio
    async def test_decline_then_dispatch(self, client, station, make_alert):
        alert = await make_alert(station)

        response = await client.patch(
            f"{API}/emergency/alerts/{alert.id}/decline", json={"reason": "Prank call"}
        )
        assert response.status_code == 200
        assert response.json()["data"]["declineReason"] == "Prank call"

        response = await client.patch(f"{API}/emergency/alerts/{alert.id}/dispatch")
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_refer_alert(self, client, publisher, station, other_station, make_alert):
        alert = await make_alert(station)

        response = await client.patch(
            f"{API}/emergency/alerts/{alert.id}/refer",
            json={"stationId": str(other_station.id), "reason": "Closer"},
        )

        assert response.status_code == 200
        assert response.json()["data"]["referredToStationId"] == str(other_station.id)
        assert station_room(other_station.id) in publisher.rooms("referral_created")

    @pytest.mark.asyncio
    async def test_list_alerts(self, client, station, other_station, make_alert):
        await make_alert(station)
        await make_alert(other_station)

        response = await client.get(f"{API}/emergency/alerts", params={"stationId": str(station.id)})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"] == {"current": 1, "pages": 1, "total": 1}

    @pytest.mark.asyncio
    async def test_alert_stats(self, client, station, make_alert):
        await make_alert(station, priority="low")

        response = await client.get(f"{API}/emergency/alerts/stats")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["totalAlerts"] == 1
        assert data["lowPriorityAlerts"] == 1

    @pytest.mark.asyncio
    async def test_delete_alert(self, client, station, make_alert):
        alert = await make_alert(station)

        response = await client.delete(f"{API}/emergency/alerts/{alert.id}")

        assert response.status_code == 200
        assert (await client.get(f"{API}/emergency/alerts/{alert.id}")).status_code == 404


class TestIncidentEndpoints:
    """Tests for /api/incidents."""

    @pytest.mark.asyncio
    async def test_status_patch(self, client, publisher, station, operations, on_duty, make_alert, make_incident):
        alert = await make_alert(station, status="accepted", dispatched=True)
        incident = await make_incident(alert, operations, on_duty)

        response = await client.patch(f"{API}/incidents/{incident.id}/status", json={"status": "dispatched"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "dispatched"
        assert data["dispatchedAt"] is not None
        assert data["turnoutSlip"]["unit"]["name"] == "Red Watch"
        assert "turnout_slip_dispatched" in publisher.names()

    @pytest.mark.asyncio
    async def test_status_patch_backwards(self, client, station, operations, on_duty, make_alert, make_incident):
        alert = await make_alert(station, status="accepted", dispatched=True)
        incident = await make_incident(alert, operations, on_duty, status="on_scene")

        response = await client.patch(f"{API}/incidents/{incident.id}/status", json={"status": "active"})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_status_required(self, client, station, operations, on_duty, make_alert, make_incident):
        alert = await make_alert(station)
        incident = await make_incident(alert, operations, on_duty)

        response = await client.patch(f"{API}/incidents/{incident.id}/status", json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Status is required"

    @pytest.mark.asyncio
    async def test_incidents_for_alert_without_any(self, client, station, make_alert):
        alert = await make_alert(station)

        response = await client.get(f"{API}/incidents/alert/{alert.id}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_incidents(self, client, station, operations, on_duty, make_alert, make_incident):
        alert = await make_alert(station)
        await make_incident(alert, operations, on_duty, status="closed")

        response = await client.get(f"{API}/incidents", params={"status": "closed"})

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1


class TestUnitEndpoints:
    """Tests for /api/fire/units."""

    @pytest.mark.asyncio
    async def test_activate_conflict(self, client, red_watch, blue_watch):
        response = await client.patch(f"{API}/fire/units/{red_watch.id}/activate")
        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is True

        response = await client.patch(f"{API}/fire/units/{blue_watch.id}/activate")

        assert response.status_code == 409
        assert response.json()["activeUnit"]["name"] == "Red Watch"

    @pytest.mark.asyncio
    async def test_deactivate_too_early(self, client, red_watch):
        await client.patch(f"{API}/fire/units/{red_watch.id}/activate")

        response = await client.patch(f"{API}/fire/units/{red_watch.id}/deactivate")

        assert response.status_code == 409
        data = response.json()
        assert "nextDeactivationTime" in data
        assert "activatedAt" in data

    @pytest.mark.asyncio
    async def test_active_unit(self, client, operations, on_duty):
        response = await client.get(f"{API}/fire/units/active/{operations.id}")

        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Red Watch"

    @pytest.mark.asyncio
    async def test_no_active_unit(self, client, operations, red_watch):
        response = await client.get(f"{API}/fire/units/active/{operations.id}")

        assert response.json() == {
            "success": True,
            "message": "No active unit for this department",
            "data": None,
        }

    @pytest.mark.asyncio
    async def test_auto_deactivate(self, client, red_watch):
        response = await client.post(f"{API}/fire/units/auto-deactivate")

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == {"deactivatedCount": 0, "deactivatedUnits": []}
        assert body["message"] == "Automatically deactivated 0 unit(s)"


class TestErrorHandlers:
    """Tests for the application error envelope."""

    @pytest.mark.asyncio
    async def test_unhandled_exception_envelope(self):
        """Unexpected failures use the same envelope as lifecycle errors."""
        response = await global_exception_handler(MagicMock(), RuntimeError("connection reset"))

        assert response.status_code == 500
        assert json.loads(response.body) == {
            "success": False,
            "message": "connection reset",
            "reason": "unexpected",
        }
