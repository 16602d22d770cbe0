from fastapi import APIRouter, Depends
from app.modules.access.preferences import HAS_SEEN_INTRO_KEY, ScopedPreferences
from app.modules.access.schemas import (
    Profile, Role, AccessStateResponse, ActiveSelectionResponse,
    ActiveLocationUpdate, ActiveBrandUpdate, IntroUpdate
)
from app.modules.access.service import AccessResolver, ActiveSelectionService
from app.core.dependencies import get_access_resolver, get_user_preferences, require_role

router = APIRouter(prefix="/access", tags=["access"])

any_role = require_role(Role.ADMIN, Role.EMPLOYEE, Role.PARTNER)


def get_selection_service(
    resolver: AccessResolver = Depends(get_access_resolver),
    preferences: ScopedPreferences = Depends(get_user_preferences)
) -> ActiveSelectionService:
    return ActiveSelectionService(resolver, preferences)


@router.get("/me", response_model=AccessStateResponse)
def get_access_state(
    profile: Profile = Depends(any_role),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Profile, controllable locations/brands and the current active selection"""
    return service.current_state(profile)


@router.put("/active-location", response_model=ActiveSelectionResponse)
def set_active_location(
    body: ActiveLocationUpdate,
    profile: Profile = Depends(any_role),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Switch active location; ids outside the access list leave the selection unchanged"""
    return service.set_location(profile, body.location_id)


@router.put("/active-brand", response_model=ActiveSelectionResponse)
def set_active_brand(
    body: ActiveBrandUpdate,
    profile: Profile = Depends(any_role),
    service: ActiveSelectionService = Depends(get_selection_service)
):
    """Switch active brand; ids outside the access list leave the selection unchanged"""
    return service.set_brand(profile, body.brand_id)


@router.delete("/active", status_code=204)
def clear_active_selection(
    service: ActiveSelectionService = Depends(get_selection_service)
):
    service.clear()
    return None


@router.get("/intro")
def get_intro_state(
    preferences: ScopedPreferences = Depends(get_user_preferences)
):
    return {"has_seen_intro": preferences.get(HAS_SEEN_INTRO_KEY) == "true"}


@router.put("/intro")
def set_intro_state(
    body: IntroUpdate,
    preferences: ScopedPreferences = Depends(get_user_preferences)
):
    preferences.set(HAS_SEEN_INTRO_KEY, "true" if body.has_seen_intro else "false")
    return {"has_seen_intro": body.has_seen_intro}
