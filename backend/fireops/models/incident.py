"""Incident model for the operational response to an accepted alert."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fireops.database import Base
from fireops.timeutils import utcnow

INCIDENT_PENDING = "pending"
INCIDENT_ACTIVE = "active"
INCIDENT_DISPATCHED = "dispatched"
INCIDENT_ON_SCENE = "on_scene"
INCIDENT_RESOLVED = "resolved"
INCIDENT_CLOSED = "closed"
INCIDENT_REFERRED = "referred"

# Forward order of the main flow; `referred` branches off any open state
INCIDENT_FLOW = (
    INCIDENT_PENDING,
    INCIDENT_ACTIVE,
    INCIDENT_DISPATCHED,
    INCIDENT_ON_SCENE,
    INCIDENT_RESOLVED,
    INCIDENT_CLOSED,
)
INCIDENT_STATUSES = (*INCIDENT_FLOW, INCIDENT_REFERRED)
TERMINAL_INCIDENT_STATUSES = (INCIDENT_CLOSED, INCIDENT_REFERRED)

# Statuses that make a station busy. Used by the alert guard, the station
# flag recompute and the active-incident notification alike.
LIVE_INCIDENT_STATUSES = (
    INCIDENT_PENDING,
    INCIDENT_ACTIVE,
    INCIDENT_DISPATCHED,
    INCIDENT_ON_SCENE,
)

# status -> timestamp column set on first entry
STATUS_TIMESTAMP_FIELDS = {
    INCIDENT_DISPATCHED: "dispatched_at",
    INCIDENT_ON_SCENE: "arrived_at",
    INCIDENT_RESOLVED: "resolved_at",
    INCIDENT_CLOSED: "closed_at",
    INCIDENT_REFERRED: "referred_at",
}


class Incident(Base):
    """
    Operational record created when a station accepts an alert.

    Several incidents may point at the same alert (re-dispatch). Operational
    timestamps are first-write-wins; the turnout slip is generated once, on the
    first move into `dispatched`.
    """

    __tablename__ = "incidents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    alert_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("emergency_alerts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    station_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("stations.id"), nullable=False)
    department_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("departments.id"), nullable=False, index=True
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("units.id"), nullable=False, index=True)

    status: Mapped[str] = mapped_column(String(20), default=INCIDENT_PENDING, nullable=False)
    turnout_slip: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    # Operational timestamps
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    arrived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Referral
    referred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    referred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    referred_to_station_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("stations.id"))
    refer_reason: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_incidents_station_status", station_id, status),
        Index("idx_incidents_created", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Incident {self.id}: {self.status}>"
