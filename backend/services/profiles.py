"""Per-profile storage for the admin-mode flag."""

from __future__ import annotations

import re

from backend.config import settings
from engine.hub.session import AdminSessionState, FileProfileStorage

DEFAULT_PROFILE = "default"

_PROFILE_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def profile_id(raw: str | None) -> str:
    """Client-supplied profile id, or DEFAULT_PROFILE if missing or unsafe as a file name."""
    if raw and _PROFILE_RE.match(raw):
        return raw
    return DEFAULT_PROFILE


def admin_session(raw_profile: str | None) -> AdminSessionState:
    path = settings.PROFILE_DIR / f"{profile_id(raw_profile)}.json"
    return AdminSessionState(FileProfileStorage(path))
