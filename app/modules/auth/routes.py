from fastapi import APIRouter, Depends
from app.modules.auth.schemas import LoginRequest, TokenResponse, MeResponse
from app.modules.auth.service import AuthService, forget_token
from app.modules.access.gate import home_path
from app.modules.access.preferences import ScopedPreferences, SELECTION_KEYS
from app.modules.access.schemas import Profile
from app.core.dependencies import (
    get_admin_auth_service,
    get_sign_in_service,
    get_current_token,
    get_current_user_id,
    get_current_profile,
    get_user_preferences,
)
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_sign_in_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
def logout(
    token: str = Depends(get_current_token),
    preferences: ScopedPreferences = Depends(get_user_preferences),
    service: Optional[AuthService] = Depends(get_admin_auth_service)
):
    """Logout, revoke the session and forget the caller's active location/brand"""
    preferences.delete_many(SELECTION_KEYS)
    if service is None:
        logger.warning("Session not revoked: SUPABASE_SERVICE_ROLE_KEY not configured")
        forget_token(token)
    else:
        service.logout(token)
    logger.info(f"User {preferences.user_id} logged out")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=MeResponse)
def get_current_user(
    current_user: Dict = Depends(get_current_user_id),
    profile: Optional[Profile] = Depends(get_current_profile)
):
    """Get current authenticated user, their profile and landing path."""
    return MeResponse(
        id=current_user["id"],
        email=current_user.get("email"),
        profile=profile,
        home=home_path(profile.role if profile else None),
    )
