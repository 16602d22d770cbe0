"""
Local key-value storage for per-device preferences.

Holds the intro flag and the last chosen active location/brand so they survive
a restart. Values are plain strings; there is no schema versioning.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

HAS_SEEN_INTRO_KEY = "hasSeenIntro"
ACTIVE_LOCATION_KEY = "cg.activeLocationId"
ACTIVE_BRAND_KEY = "cg.activeBrandId"
ACTIVE_USER_KEY = "cg.activeUserId"

SELECTION_KEYS = (ACTIVE_LOCATION_KEY, ACTIVE_BRAND_KEY, ACTIVE_USER_KEY)


class PreferenceStore(ABC):
    """Minimal string key-value interface."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def delete_many(self, keys) -> None:
        for key in keys:
            self.delete(key)


class MemoryPreferenceStore(PreferenceStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFilePreferenceStore(PreferenceStore):
    """Preferences persisted as a single JSON object on disk. Last writer wins."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read preferences from {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed preferences file {self.path}")
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _save(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def delete_many(self, keys) -> None:
        with self._lock:
            data = self._load()
            removed = [k for k in keys if data.pop(k, None) is not None]
            if removed:
                self._save(data)


class ScopedPreferences(PreferenceStore):
    """View of a shared store with keys namespaced by user id."""

    def __init__(self, store: PreferenceStore, user_id: str):
        self.store = store
        self.user_id = user_id

    def _key(self, key: str) -> str:
        return f"{self.user_id}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self.store.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self.store.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self.store.delete(self._key(key))

    def delete_many(self, keys) -> None:
        self.store.delete_many([self._key(k) for k in keys])
