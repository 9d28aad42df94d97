"""API routes for unit duty scheduling."""

import logging

from fastapi import APIRouter

from fireops.dependencies import Units
from fireops.schemas.common import envelope, parse_id
from fireops.schemas.unit import UnitOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/fire/units", tags=["units"])


@router.patch("/{unit_id}/activate")
async def activate_unit(unit_id: str, units: Units) -> dict:
    """Put an operations unit on duty. Only one per department."""
    unit = await units.activate(parse_id(unit_id, "unit"))
    return envelope(UnitOut.model_validate(unit), "Unit activated successfully")


@router.patch("/{unit_id}/deactivate")
async def deactivate_unit(unit_id: str, units: Units) -> dict:
    """Take a unit off duty once the morning after activation has been reached."""
    unit = await units.deactivate(parse_id(unit_id, "unit"))
    return envelope(UnitOut.model_validate(unit), "Unit deactivated successfully")


@router.post("/auto-deactivate")
async def run_auto_deactivation(units: Units) -> dict:
    """Run the end-of-shift sweep immediately."""
    result = await units.auto_deactivate_sweep()
    return envelope(result, f"Automatically deactivated {result.deactivated_count} unit(s)")


@router.get("/active/{department_id}")
async def active_unit(department_id: str, units: Units) -> dict:
    unit = await units.active_unit_for_department(parse_id(department_id, "department"))
    if unit is None:
        return {"success": True, "message": "No active unit for this department", "data": None}
    return envelope(UnitOut.model_validate(unit))
