from supabase import Client
from app.modules.access.schemas import (
    Profile, Location, Brand, AccessLists, Role,
    AccessStateResponse, ActiveSelectionResponse
)
from app.modules.access.preferences import ACTIVE_LOCATION_KEY, ACTIVE_BRAND_KEY, SELECTION_KEYS
from typing import List, Optional, Sequence, Type
import logging

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, email, full_name, role, location_id, brand_id"
LOCATION_COLUMNS = "id, name, city, state, address"
BRAND_COLUMNS = "id, name, slug"


def choose_active(
    candidates: Sequence[str],
    persisted: Optional[str] = None,
    default: Optional[str] = None
) -> Optional[str]:
    """Pick the active id: persisted choice, then profile default, then first entry."""
    if persisted and persisted in candidates:
        return persisted
    if default and default in candidates:
        return default
    return candidates[0] if candidates else None


class AccessResolver:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def resolve_profile(self, user_id: str) -> Optional[Profile]:
        """Fetch the single profile row for a user. Any failure means no profile."""
        if not user_id:
            return None
        try:
            result = self.supabase.table("profiles")\
                .select(PROFILE_COLUMNS)\
                .eq("id", user_id)\
                .single()\
                .execute()
            if not result.data:
                logger.warning(f"No profile found for user {user_id}")
                return None
            return Profile(**result.data)
        except Exception as e:
            logger.error(f"Error resolving profile for user {user_id}: {e}")
            return None

    def resolve_access_lists(self, profile: Optional[Profile]) -> AccessLists:
        """Locations and brands the profile may act on, each ordered by name."""
        if profile is None or profile.role is None:
            return AccessLists()
        if profile.role == Role.ADMIN:
            return AccessLists(
                locations=self._catalog("cg_locations", LOCATION_COLUMNS, Location),
                brands=self._catalog("cg_brands", BRAND_COLUMNS, Brand),
            )
        return AccessLists(
            locations=self._granted(
                profile.id, "user_location_access", "location_id",
                "cg_locations", LOCATION_COLUMNS, Location
            ),
            brands=self._granted(
                profile.id, "user_brand_access", "brand_id",
                "cg_brands", BRAND_COLUMNS, Brand
            ),
        )

    def _catalog(self, table: str, columns: str, model: Type) -> List:
        try:
            result = self.supabase.table(table)\
                .select(columns)\
                .order("name")\
                .execute()
            return [model(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error reading catalog {table}: {e}")
            return []

    def _granted(
        self,
        user_id: str,
        grant_table: str,
        grant_column: str,
        catalog_table: str,
        columns: str,
        model: Type
    ) -> List:
        try:
            grants = self.supabase.table(grant_table)\
                .select(grant_column)\
                .eq("user_id", user_id)\
                .execute()
            ids = list(dict.fromkeys(
                g[grant_column] for g in (grants.data or []) if g.get(grant_column)
            ))
            if not ids:
                return []
            result = self.supabase.table(catalog_table)\
                .select(columns)\
                .in_("id", ids)\
                .order("name")\
                .execute()
            return [model(**row) for row in (result.data or [])]
        except Exception as e:
            logger.error(f"Error reading {grant_table} for user {user_id}: {e}")
            return []


class ActiveSelectionService:
    """Per-user active location/brand backed by a preference store."""

    def __init__(self, resolver: AccessResolver, preferences):
        self.resolver = resolver
        self.preferences = preferences

    def current_state(self, profile: Profile) -> AccessStateResponse:
        access = self.resolver.resolve_access_lists(profile)
        location_id = choose_active(
            access.location_ids(), self.preferences.get(ACTIVE_LOCATION_KEY), profile.location_id
        )
        brand_id = choose_active(
            access.brand_ids(), self.preferences.get(ACTIVE_BRAND_KEY), profile.brand_id
        )
        self._store(ACTIVE_LOCATION_KEY, location_id)
        self._store(ACTIVE_BRAND_KEY, brand_id)
        return AccessStateResponse(
            profile=profile,
            locations=access.locations,
            brands=access.brands,
            active_location_id=location_id,
            active_brand_id=brand_id,
        )

    def set_location(self, profile: Profile, location_id: str) -> ActiveSelectionResponse:
        state = self.current_state(profile)
        changed = location_id in [loc.id for loc in state.locations]
        if changed:
            self._store(ACTIVE_LOCATION_KEY, location_id)
            state.active_location_id = location_id
        else:
            logger.info(f"User {profile.id} asked for location {location_id} outside their access list")
        return ActiveSelectionResponse(
            changed=changed,
            active_location_id=state.active_location_id,
            active_brand_id=state.active_brand_id,
        )

    def set_brand(self, profile: Profile, brand_id: str) -> ActiveSelectionResponse:
        state = self.current_state(profile)
        changed = brand_id in [b.id for b in state.brands]
        if changed:
            self._store(ACTIVE_BRAND_KEY, brand_id)
            state.active_brand_id = brand_id
        else:
            logger.info(f"User {profile.id} asked for brand {brand_id} outside their access list")
        return ActiveSelectionResponse(
            changed=changed,
            active_location_id=state.active_location_id,
            active_brand_id=state.active_brand_id,
        )

    def clear(self) -> None:
        self.preferences.delete_many(SELECTION_KEYS)

    def _store(self, key: str, value: Optional[str]) -> None:
        if self.preferences.get(key) == value:
            return
        if value:
            self.preferences.set(key, value)
        else:
            self.preferences.delete(key)
