"""EmergencyAlert model for reported emergencies awaiting triage."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fireops.database import Base
from fireops.timeutils import utcnow

# Status mirror of the terminal flags
ALERT_ACTIVE = "active"
ALERT_PENDING = "pending"
ALERT_ACCEPTED = "accepted"
ALERT_REJECTED = "rejected"
ALERT_REFERRED = "referred"

ALERT_STATUSES = (ALERT_ACTIVE, ALERT_PENDING, ALERT_ACCEPTED, ALERT_REJECTED, ALERT_REFERRED)
OPEN_ALERT_STATUSES = (ALERT_ACTIVE, ALERT_PENDING)

REPORTER_USER = "User"
REPORTER_PERSONNEL = "FirePersonnel"


class EmergencyAlert(Base):
    """
    An emergency reported by a user or fire personnel.

    `dispatched`, `declined` and `referred` are mutually exclusive terminal
    flags: once one is set the alert can no longer change outcome.
    """

    __tablename__ = "emergency_alerts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Classification
    incident_type: Mapped[str] = mapped_column(String(50), nullable=False)
    incident_name: Mapped[str] = mapped_column(String(255), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="high", nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    estimated_casualties: Mapped[int | None] = mapped_column(Integer)
    estimated_damage: Mapped[str | None] = mapped_column(String(255))

    # Location
    location_name: Mapped[str | None] = mapped_column(String(255))
    location_url: Mapped[str | None] = mapped_column(String(500))
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Routing
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id"), nullable=False, index=True
    )
    department_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("departments.id"))
    unit_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("units.id"))

    # Reporter is polymorphic over users / fire_personnel
    reporter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    reporter_type: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(String(20), default=ALERT_ACTIVE, nullable=False)

    # Terminal outcomes
    dispatched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    dispatched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    declined: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    declined_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    decline_reason: Mapped[str | None] = mapped_column(Text)
    referred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    referred_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    referred_to_station_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("stations.id"))
    refer_reason: Mapped[str | None] = mapped_column(Text)

    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_alerts_station_status", station_id, status),
        Index("idx_alerts_reported", reported_at.desc()),
    )

    @property
    def terminal_status(self) -> str | None:
        """Name of the terminal outcome already reached, if any."""
        if self.dispatched:
            return "dispatched"
        if self.declined:
            return "declined"
        if self.referred:
            return "referred"
        return None

    def __repr__(self) -> str:
        return f"<EmergencyAlert {self.id}: {self.incident_name} ({self.status})>"
