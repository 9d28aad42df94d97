"""Pydantic schemas for emergency alerts."""

import uuid

from pydantic import AliasChoices, ConfigDict, Field

from fireops.schemas.common import CamelModel, Coordinates, UTCDateTime


class StationDescriptor(CamelModel):
    """Station details sent by clients that do not know the station id."""

    model_config = ConfigDict(extra="allow")

    # Clients copy whole station records, so the id may arrive as `_id`
    id: str | None = Field(None, validation_alias=AliasChoices("_id", "id"))
    place_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    name: str | None = None


class AlertLocation(CamelModel):
    """Where the emergency is."""

    location_name: str | None = None
    location_url: str | None = None
    coordinates: Coordinates


class AlertCreate(CamelModel):
    """Request body for raising an alert."""

    incident_type: str = Field(..., min_length=1)
    incident_name: str = Field(..., min_length=1)
    location: AlertLocation
    station: str | StationDescriptor
    user_id: str = Field(..., min_length=1)
    description: str | None = None
    estimated_casualties: int | None = Field(None, ge=0)
    estimated_damage: str | None = None
    priority: str = "high"


class AlertUpdate(CamelModel):
    """Partial update. Only fields present in the request are applied."""

    status: str | None = None
    incident_type: str | None = None
    incident_name: str | None = None
    priority: str | None = None
    description: str | None = None
    estimated_casualties: int | None = Field(None, ge=0)
    estimated_damage: str | None = None
    location: AlertLocation | None = None
    department_id: str | None = None
    unit_id: str | None = None
    decline_reason: str | None = None
    refer_reason: str | None = None
    referred_to_station: str | None = None
    dispatched_at: UTCDateTime | None = None
    declined_at: UTCDateTime | None = None
    referred_at: UTCDateTime | None = None


class AlertDecline(CamelModel):
    reason: str | None = None


class AlertRefer(CamelModel):
    station_id: str | None = None
    reason: str | None = None


class AlertOut(CamelModel):
    """Emergency alert response schema."""

    id: uuid.UUID
    incident_type: str
    incident_name: str
    priority: str
    description: str | None = None
    estimated_casualties: int | None = None
    estimated_damage: str | None = None

    location_name: str | None = None
    location_url: str | None = None
    latitude: float
    longitude: float

    station_id: uuid.UUID
    department_id: uuid.UUID | None = None
    unit_id: uuid.UUID | None = None
    reporter_id: uuid.UUID
    reporter_type: str

    status: str
    dispatched: bool
    dispatched_at: UTCDateTime | None = None
    declined: bool
    declined_at: UTCDateTime | None = None
    decline_reason: str | None = None
    referred: bool
    referred_at: UTCDateTime | None = None
    referred_to_station_id: uuid.UUID | None = None
    refer_reason: str | None = None

    reported_at: UTCDateTime
    created_at: UTCDateTime
    updated_at: UTCDateTime


class AlertStats(CamelModel):
    """Aggregate alert counts."""

    total_alerts: int = 0
    active_alerts: int = 0
    accepted_alerts: int = 0
    rejected_alerts: int = 0
    referred_alerts: int = 0
    high_priority_alerts: int = 0
    medium_priority_alerts: int = 0
    low_priority_alerts: int = 0
    fire_incidents: int = 0
    rescue_incidents: int = 0
    medical_incidents: int = 0
    other_incidents: int = 0
