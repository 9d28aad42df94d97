"""Station and Department models."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fireops.database import Base
from fireops.timeutils import utcnow

IN_COMMISSION = "in commission"
OUT_OF_COMMISSION = "out of commission"


class Station(Base):
    """
    A fire station that receives and triages emergency alerts.

    `has_active_alert` and `has_active_incident` are denormalized caches,
    recomputed from live counts after every alert or incident mutation.
    """

    __tablename__ = "stations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str | None] = mapped_column(String(255))
    call_sign: Mapped[str | None] = mapped_column(String(50), unique=True)
    location: Mapped[str | None] = mapped_column(String(255))
    location_url: Mapped[str | None] = mapped_column(String(500))
    lat: Mapped[float | None] = mapped_column(Float)
    lng: Mapped[float | None] = mapped_column(Float)
    region: Mapped[str | None] = mapped_column(String(100), index=True)
    phone_number: Mapped[str | None] = mapped_column(String(50))
    place_id: Mapped[str | None] = mapped_column(String(255), unique=True)

    status: Mapped[str] = mapped_column(String(30), default=IN_COMMISSION, nullable=False)
    has_active_alert: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    has_active_incident: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (Index("idx_stations_coordinates", lat, lng),)

    @property
    def in_commission(self) -> bool:
        return self.status != OUT_OF_COMMISSION

    def __repr__(self) -> str:
        return f"<Station {self.id}: {self.name}>"


class Department(Base):
    """A department within a station (e.g. Operations, Administration)."""

    __tablename__ = "departments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    station_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stations.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("uq_departments_station_name", station_id, name, unique=True),
    )

    def __repr__(self) -> str:
        return f"<Department {self.id}: {self.name}>"
