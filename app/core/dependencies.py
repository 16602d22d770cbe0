"""
Core dependencies for route protection and role gating
"""

from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.config import settings
from app.core.errors import ProxyError
from app.database.supabase_client import (
    get_supabase, get_service_supabase, get_admin_supabase, get_sign_in_supabase
)
from app.modules.access.gate import GateOutcome, SIGN_IN_PATH, evaluate_gate
from app.modules.access.preferences import JsonFilePreferenceStore, PreferenceStore, ScopedPreferences
from app.modules.access.schemas import Profile, Role, SessionPhase, SessionSnapshot
from app.modules.access.service import AccessResolver
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

_preference_store: Optional[PreferenceStore] = None


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for resolved access data (profile)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_sign_in_service(supabase: Client = Depends(get_sign_in_supabase)) -> AuthService:
    return AuthService(supabase)


def get_admin_auth_service(admin: Optional[Client] = Depends(get_admin_supabase)) -> Optional[AuthService]:
    """AuthService bound to the service-role client, or None when the server cannot verify tokens."""
    if admin is None:
        return None
    return AuthService(admin)


def get_access_resolver(supabase: Client = Depends(get_service_supabase)) -> AccessResolver:
    return AccessResolver(supabase)


def get_preference_store() -> PreferenceStore:
    global _preference_store
    if _preference_store is None:
        _preference_store = JsonFilePreferenceStore(settings.preferences_path)
    return _preference_store


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_user_preferences(
    user_data: dict = Depends(get_current_user_id),
    store: PreferenceStore = Depends(get_preference_store)
) -> ScopedPreferences:
    return ScopedPreferences(store, user_data["id"])


def get_current_profile(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    resolver: AccessResolver = Depends(get_access_resolver)
) -> Optional[Profile]:
    """Resolved profile for the caller; None when missing or unreadable."""
    cache = _get_request_cache(request)
    if "profile" not in cache:
        cache["profile"] = resolver.resolve_profile(user_data["id"])
    return cache["profile"]


def require_role(*roles: Role):
    """Factory function to create a role gate dependency"""
    allow = frozenset(roles)

    def check_role(
        profile: Optional[Profile] = Depends(get_current_profile)
    ) -> Profile:
        snapshot = SessionSnapshot(
            phase=SessionPhase.AUTHENTICATED if profile else SessionPhase.UNAUTHENTICATED,
            loading=False,
            profile=profile,
        )
        decision = evaluate_gate(snapshot, allow)
        if decision.outcome == GateOutcome.RENDER:
            return profile
        if decision.redirect_to == SIGN_IN_PATH:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"message": "No usable profile for this account", "redirect": SIGN_IN_PATH}
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "message": f"Role {profile.role.value} may not access this portal",
                "redirect": decision.redirect_to,
            }
        )
    return check_role


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_proxy_user(
    authorization: Optional[str] = Header(None),
    auth_service: Optional[AuthService] = Depends(get_admin_auth_service)
) -> dict:
    """Verify the caller's token against Supabase Auth. Fails closed when verification is unavailable."""
    token = parse_bearer(authorization)
    if not token:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Missing bearer token")
    if auth_service is None:
        logger.error("Proxy token check refused: SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY not configured")
        raise ProxyError(status.HTTP_503_SERVICE_UNAVAILABLE, "Server auth not configured")
    try:
        user_data = auth_service.get_current_user(token)
    except HTTPException:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    logger.debug(f"Proxy token validated for user {user_data['id']}")
    return user_data
