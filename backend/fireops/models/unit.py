"""Unit model for duty crews."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from fireops.database import Base
from fireops.timeutils import utcnow


class Unit(Base):
    """
    A duty crew belonging to one department.

    Only one unit per department may be on duty (`is_active`). The invariant is
    checked at activation time rather than by a storage constraint.
    """

    __tablename__ = "units"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#000000", nullable=False)
    department_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # Duty state
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("uq_units_department_name", department_id, name, unique=True),
        Index("idx_units_department_active", department_id, is_active),
        Index("idx_units_active_since", is_active, activated_at),
    )

    def __repr__(self) -> str:
        return f"<Unit {self.id}: {self.name} active={self.is_active}>"
