"""Pydantic schemas for API request/response validation."""

from fireops.schemas.alert import AlertCreate, AlertOut, AlertStats, AlertUpdate
from fireops.schemas.incident import IncidentOut, IncidentStats
from fireops.schemas.unit import SweepResult, UnitOut

__all__ = [
    "AlertCreate",
    "AlertOut",
    "AlertStats",
    "AlertUpdate",
    "IncidentOut",
    "IncidentStats",
    "SweepResult",
    "UnitOut",
]
