from fastapi import APIRouter, Depends
from app.modules.access.gate import home_path
from app.modules.access.routes import get_selection_service
from app.modules.access.schemas import Profile, Role
from app.modules.access.service import ActiveSelectionService
from app.core.dependencies import require_role
from typing import Dict

router = APIRouter(prefix="/portals", tags=["portals"])


def _landing(profile: Profile, service: ActiveSelectionService) -> Dict:
    state = service.current_state(profile)
    return {
        "portal": home_path(profile.role).lstrip("/"),
        "role": profile.role.value,
        "active_location_id": state.active_location_id,
        "active_brand_id": state.active_brand_id,
        "locations": [loc.model_dump() for loc in state.locations],
        "brands": [b.model_dump() for b in state.brands],
    }


@router.get("/admin")
def admin_portal(
    profile: Profile = Depends(require_role(Role.ADMIN)),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Admin command center landing data"""
    return _landing(profile, service)


@router.get("/employee")
def employee_portal(
    profile: Profile = Depends(require_role(Role.EMPLOYEE, Role.ADMIN)),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Employee portal landing data (admins may look in)"""
    return _landing(profile, service)


@router.get("/partner")
def partner_portal(
    profile: Profile = Depends(require_role(Role.PARTNER, Role.ADMIN)),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Partner portal landing data (admins may look in)"""
    return _landing(profile, service)
