"""Pydantic schemas for duty units."""

import uuid

from fireops.schemas.common import CamelModel, UTCDateTime


class UnitOut(CamelModel):
    id: uuid.UUID
    name: str
    color: str
    department_id: uuid.UUID
    is_active: bool
    activated_at: UTCDateTime | None = None


class DeactivatedUnit(CamelModel):
    unit_id: uuid.UUID
    unit_name: str
    department: str | None = None
    activated_at: UTCDateTime


class SweepResult(CamelModel):
    """Outcome of one automatic deactivation pass."""

    deactivated_count: int
    deactivated_units: list[DeactivatedUnit]
