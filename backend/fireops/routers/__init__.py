"""API routers."""

from fireops.routers.alerts import router as alerts_router
from fireops.routers.health import router as health_router
from fireops.routers.incidents import router as incidents_router
from fireops.routers.units import router as units_router

__all__ = ["alerts_router", "health_router", "incidents_router", "units_router"]
