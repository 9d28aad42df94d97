"""Pydantic schemas for incidents."""

import uuid
from typing import Any

from pydantic import computed_field

from fireops.schemas.common import CamelModel, UTCDateTime
from fireops.timeutils import minutes_between


class IncidentCreate(CamelModel):
    alert_id: str
    department_on_duty: str
    unit_on_duty: str
    status: str | None = None


class IncidentUpdate(CamelModel):
    status: str | None = None
    department_on_duty: str | None = None
    unit_on_duty: str | None = None
    timestamp: UTCDateTime | None = None


class IncidentStatusUpdate(CamelModel):
    status: str | None = None
    timestamp: UTCDateTime | None = None


class IncidentRefer(CamelModel):
    station_id: str | None = None
    reason: str | None = None


class IncidentOut(CamelModel):
    """Incident response schema with derived durations."""

    id: uuid.UUID
    alert_id: uuid.UUID
    station_id: uuid.UUID
    department_id: uuid.UUID
    unit_id: uuid.UUID
    status: str
    turnout_slip: dict[str, Any] | None = None

    dispatched_at: UTCDateTime | None = None
    arrived_at: UTCDateTime | None = None
    resolved_at: UTCDateTime | None = None
    closed_at: UTCDateTime | None = None

    referred: bool = False
    referred_at: UTCDateTime | None = None
    referred_to_station_id: uuid.UUID | None = None
    refer_reason: str | None = None

    created_at: UTCDateTime
    updated_at: UTCDateTime

    @computed_field(alias="responseTimeMinutes")
    @property
    def response_time_minutes(self) -> int | None:
        return minutes_between(self.dispatched_at, self.arrived_at)

    @computed_field(alias="resolutionTimeMinutes")
    @property
    def resolution_time_minutes(self) -> int | None:
        return minutes_between(self.arrived_at, self.resolved_at)

    @computed_field(alias="totalIncidentTimeMinutes")
    @property
    def total_incident_time_minutes(self) -> int | None:
        return minutes_between(self.dispatched_at, self.closed_at)


class IncidentStats(CamelModel):
    """Aggregate incident counts and mean durations in minutes."""

    total_incidents: int = 0
    pending_incidents: int = 0
    active_incidents: int = 0
    dispatched_incidents: int = 0
    on_scene_incidents: int = 0
    resolved_incidents: int = 0
    closed_incidents: int = 0
    referred_incidents: int = 0
    avg_response_time: float | None = None
    avg_resolution_time: float | None = None
