"""
Admin-mode session flag.

Admin mode gates the mutation UI. It belongs to a browser profile, not to the
signed-in identity: it is persisted per profile, restored on login when it was
left on, and cleared on logout.

Storage layout (FileProfileStorage):
  {
    "docHubAdminMode": "true"
  }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ADMIN_MODE_KEY = "docHubAdminMode"


# ---------------------------------------------------------------------------
# Profile storage
# ---------------------------------------------------------------------------


class ProfileStorage:
    """
    Abstract string key/value storage for one profile.
    Implement with a file for real profiles, or in-memory for tests.
    """

    def get_item(self, key: str) -> str | None:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryProfileStorage(ProfileStorage):
    """In-memory storage for testing."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class FileProfileStorage(ProfileStorage):
    """JSON file per profile, written with owner-only permissions."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("profile: unreadable storage %s: %s", self.path, e)
            return
        if isinstance(data, dict):
            self._data = {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        self.path.chmod(0o600)

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()


# ---------------------------------------------------------------------------
# Admin session
# ---------------------------------------------------------------------------


class AdminSessionState:
    """Admin-mode flag for one profile. Starts off until on_login()."""

    def __init__(self, storage: ProfileStorage) -> None:
        self._storage = storage
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    def on_login(self) -> bool:
        """Restore a flag left on in this profile."""
        self._enabled = self._storage.get_item(ADMIN_MODE_KEY) == "true"
        return self._enabled

    def set(self, enabled: bool) -> None:
        self._enabled = enabled
        if enabled:
            self._storage.set_item(ADMIN_MODE_KEY, "true")
        else:
            self._storage.remove_item(ADMIN_MODE_KEY)

    def toggle(self) -> bool:
        self.set(not self._enabled)
        return self._enabled

    def on_logout(self) -> None:
        self._enabled = False
        self._storage.remove_item(ADMIN_MODE_KEY)
