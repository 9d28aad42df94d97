"""Database models."""

from fireops.models.alert import EmergencyAlert
from fireops.models.incident import Incident
from fireops.models.reporter import FirePersonnel, User
from fireops.models.station import Department, Station
from fireops.models.unit import Unit

__all__ = [
    "Department",
    "EmergencyAlert",
    "FirePersonnel",
    "Incident",
    "Station",
    "Unit",
    "User",
]
