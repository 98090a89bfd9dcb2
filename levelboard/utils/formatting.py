"""
LevelBoard - Formatting Helpers
===============================

Discord CDN URLs and display labels shared by the resolver and data layer.
"""

from typing import Optional

from levelboard.core.constants import (
    DISCORD_CDN_BASE,
    SERVER_NAME_ID_PREVIEW_LENGTH,
)


def avatar_url(user_id: str, avatar_hash: Optional[str]) -> Optional[str]:
    """CDN URL for a user avatar hash, or None when the user has none."""
    if not avatar_hash:
        return None
    return f"{DISCORD_CDN_BASE}/avatars/{user_id}/{avatar_hash}.png"


def guild_icon_url(guild_id: str, icon_hash: Optional[str]) -> Optional[str]:
    """CDN URL for a guild icon hash, or None when the guild has none."""
    if not icon_hash:
        return None
    return f"{DISCORD_CDN_BASE}/icons/{guild_id}/{icon_hash}.png"


def server_fallback_name(guild_id: str) -> str:
    """Label for a guild whose name could not be looked up."""
    return f"Server {guild_id[:SERVER_NAME_ID_PREVIEW_LENGTH]}..."


__all__ = [
    "avatar_url",
    "guild_icon_url",
    "server_fallback_name",
]
