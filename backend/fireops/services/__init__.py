"""Lifecycle services for alerts, incidents and duty units."""

from fireops.services.alerts import AlertLifecycle
from fireops.services.incidents import IncidentLifecycle
from fireops.services.station_guard import GuardDecision, StationGuard
from fireops.services.turnout_slip import TurnoutSlipGenerator
from fireops.services.units import UnitScheduler

__all__ = [
    "AlertLifecycle",
    "GuardDecision",
    "IncidentLifecycle",
    "StationGuard",
    "TurnoutSlipGenerator",
    "UnitScheduler",
]
