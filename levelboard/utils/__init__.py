"""
LevelBoard - Utilities Package
==============================
"""

from .api_cache import ResponseCache, RateLimiter
from .formatting import (
    avatar_url,
    guild_icon_url,
    server_fallback_name,
)

__all__ = [
    "ResponseCache",
    "RateLimiter",
    "avatar_url",
    "guild_icon_url",
    "server_fallback_name",
]
