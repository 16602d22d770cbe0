"""
Session controller for a single device.

Turns identity provider sign-in/sign-out events into resolver state:

    BOOTING -> UNAUTHENTICATED | AUTHENTICATED(profile, lists, active selection)

Every resolution captures the current generation and only commits if the
generation is unchanged when it finishes, so a sign-out (or a newer sign-in)
discards results that arrive late.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.modules.access.preferences import (
    PreferenceStore,
    HAS_SEEN_INTRO_KEY,
    ACTIVE_LOCATION_KEY,
    ACTIVE_BRAND_KEY,
    ACTIVE_USER_KEY,
    SELECTION_KEYS,
)
from app.modules.access.schemas import (
    AccessLists,
    Profile,
    Session,
    SessionPhase,
    SessionSnapshot,
)
from app.modules.access.service import AccessResolver, choose_active

logger = logging.getLogger(__name__)


class AccessSession:
    def __init__(self, resolver: AccessResolver, preferences: PreferenceStore, auth=None):
        self.resolver = resolver
        self.preferences = preferences
        self.auth = auth  # supabase Client; optional when sessions come from elsewhere
        self.has_seen_intro = False
        self._generation = 0
        self._state = SessionSnapshot()

    # Narrow interface for screens

    def get_session(self) -> Optional[Session]:
        return self._state.session

    def get_profile(self) -> Optional[Profile]:
        return self._state.profile

    def get_access_lists(self) -> AccessLists:
        return self._state.access

    def snapshot(self) -> SessionSnapshot:
        return self._state.model_copy(deep=True)

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def active_location_id(self) -> Optional[str]:
        return self._state.active_location_id

    @property
    def active_brand_id(self) -> Optional[str]:
        return self._state.active_brand_id

    def set_active_location(self, location_id: str) -> bool:
        """Switch the active location. Ids outside the resolved list are ignored."""
        if location_id not in self._state.access.location_ids():
            logger.info(f"Ignoring active location {location_id!r}: not in access list")
            return False
        self._state.active_location_id = location_id
        self._persist_selection()
        return True

    def set_active_brand(self, brand_id: str) -> bool:
        """Switch the active brand. Ids outside the resolved list are ignored."""
        if brand_id not in self._state.access.brand_ids():
            logger.info(f"Ignoring active brand {brand_id!r}: not in access list")
            return False
        self._state.active_brand_id = brand_id
        self._persist_selection()
        return True

    def set_has_seen_intro(self, value: bool = True) -> None:
        self.has_seen_intro = value
        try:
            self.preferences.set(HAS_SEEN_INTRO_KEY, "true" if value else "false")
        except Exception as e:
            logger.error(f"Failed to save intro state: {e}")

    # Lifecycle

    async def boot(self) -> SessionSnapshot:
        """Restore the intro flag and any stored identity provider session."""
        try:
            stored = await asyncio.to_thread(self.preferences.get, HAS_SEEN_INTRO_KEY)
            self.has_seen_intro = stored == "true"
        except Exception as e:
            logger.error(f"Failed to load intro state: {e}")
        session = await self._restore_session()
        if session is None:
            self._become_unauthenticated()
        else:
            await self.start(session)
        return self.snapshot()

    async def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        if self.auth is None:
            return {"ok": False, "error": "Identity provider not configured"}
        try:
            response = await asyncio.to_thread(
                self.auth.auth.sign_in_with_password,
                {"email": email, "password": password}
            )
        except Exception as e:
            logger.info(f"Sign-in failed for {email}: {e}")
            return {"ok": False, "error": str(e)}
        if not response.user or not response.session:
            return {"ok": False, "error": "Invalid credentials"}
        await self.start(Session(
            user_id=response.user.id,
            email=response.user.email,
            access_token=response.session.access_token,
        ))
        return {"ok": True}

    async def start(self, session: Session) -> bool:
        """Resolve profile, then access lists, then the initial active selection."""
        self._generation += 1
        generation = self._generation
        current = self._state.session
        if current is None or current.user_id != session.user_id:
            self._state = SessionSnapshot(phase=self._state.phase, session=session)
        else:
            self._state.session = session
        self._state.loading = True

        profile = await asyncio.to_thread(self.resolver.resolve_profile, session.user_id)
        if generation != self._generation:
            logger.info(f"Discarding stale profile resolution for user {session.user_id}")
            return False
        if profile is None:
            self._become_unauthenticated()
            return False

        access = await asyncio.to_thread(self.resolver.resolve_access_lists, profile)
        if generation != self._generation:
            logger.info(f"Discarding stale access resolution for user {session.user_id}")
            return False

        persisted_location, persisted_brand = self._load_selection(profile.id)
        self._state = SessionSnapshot(
            phase=SessionPhase.AUTHENTICATED,
            loading=False,
            session=session,
            profile=profile,
            access=access,
            active_location_id=choose_active(
                access.location_ids(), persisted_location, profile.location_id
            ),
            active_brand_id=choose_active(
                access.brand_ids(), persisted_brand, profile.brand_id
            ),
        )
        self._persist_selection()
        logger.info(
            f"Resolved user {profile.id} as {profile.role.value if profile.role else 'unknown'} "
            f"with {len(access.locations)} locations, {len(access.brands)} brands"
        )
        return True

    async def refresh(self) -> bool:
        """Re-resolve the current session, e.g. after an admin changed the role."""
        session = self._state.session
        if session is None:
            return False
        return await self.start(session)

    async def sign_out(self) -> None:
        self._generation += 1
        if self.auth is not None:
            try:
                await asyncio.to_thread(self.auth.auth.sign_out)
            except Exception as e:
                logger.error(f"Identity provider sign-out failed: {e}")
        try:
            await asyncio.to_thread(self.preferences.delete_many, SELECTION_KEYS)
        except Exception as e:
            logger.error(f"Failed to clear persisted selection: {e}")
        self._become_unauthenticated()

    # Internals

    async def _restore_session(self) -> Optional[Session]:
        if self.auth is None:
            return None
        try:
            stored = await asyncio.to_thread(self.auth.auth.get_session)
        except Exception as e:
            logger.error(f"Failed to restore session: {e}")
            return None
        if not stored or not stored.user:
            return None
        return Session(
            user_id=stored.user.id,
            email=stored.user.email,
            access_token=stored.access_token,
        )

    def _become_unauthenticated(self) -> None:
        self._state = SessionSnapshot(phase=SessionPhase.UNAUTHENTICATED, loading=False)

    def _load_selection(self, user_id: str):
        try:
            owner = self.preferences.get(ACTIVE_USER_KEY)
            if owner and owner != user_id:
                return None, None
            return (
                self.preferences.get(ACTIVE_LOCATION_KEY),
                self.preferences.get(ACTIVE_BRAND_KEY),
            )
        except Exception as e:
            logger.error(f"Failed to load persisted selection: {e}")
            return None, None

    def _persist_selection(self) -> None:
        profile = self._state.profile
        if profile is None:
            return
        try:
            self.preferences.set(ACTIVE_USER_KEY, profile.id)
            for key, value in (
                (ACTIVE_LOCATION_KEY, self._state.active_location_id),
                (ACTIVE_BRAND_KEY, self._state.active_brand_id),
            ):
                if value:
                    self.preferences.set(key, value)
                else:
                    self.preferences.delete(key)
        except Exception as e:
            logger.error(f"Failed to persist selection: {e}")
