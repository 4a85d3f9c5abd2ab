"""Helper functions for user-related data."""

from __future__ import annotations

from typing import Any

from stepladder.core.constants import UNKNOWN_DISPLAY_NAME


def smart_display_name(user: dict[str, Any]) -> str:
    """Return the best available display name for a user document.

    Prefers ``displayName``, then ``name``, then ``username``.
    """
    for key in ("displayName", "name", "username"):
        value = user.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN_DISPLAY_NAME


def avatar_url(user: dict[str, Any]) -> str | None:
    """Return the avatar URL, falling back to the uploaded profile picture."""
    return (
        user.get("avatarUrl")
        or user.get("profilePictureThumbnailUrl")
        or user.get("profilePictureUrl")
    )
