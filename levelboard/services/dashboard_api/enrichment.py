"""
LevelBoard - Row Enrichment
===========================

Attach Discord display names and avatars to rows from the database.

Rows that could not be resolved keep the username stored in the database
(the raw user ID) and get no avatar; the frontend draws its own fallback.
Pagination happens in SQL first, so only the rows on the requested page are
ever looked up.
"""

import asyncio
from typing import Iterable

from levelboard.models import LeaderboardEntry, ServerInfo, UserStats
from levelboard.services.directory import IdentityResolver


def unique_ids(user_ids: Iterable[str]) -> list[str]:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(user_ids))


async def enrich_entries(
    resolver: IdentityResolver,
    entries: list[LeaderboardEntry],
    guild_id: str,
) -> list[dict]:
    """Resolve names/avatars for leaderboard-style rows and serialize them."""
    if not entries:
        return []

    profiles = await resolver.resolve_many(unique_ids(e.user_id for e in entries), guild_id)

    for entry in entries:
        profile = profiles.get(entry.user_id)
        if profile is not None:
            entry.username = profile.display_name
            entry.avatar = profile.avatar_url

    return [entry.to_dict() for entry in entries]


async def enrich_user_stats(
    resolver: IdentityResolver,
    stats: UserStats,
) -> dict:
    profile = await resolver.resolve_one(stats.user_id, stats.server_id)
    stats.username = profile.display_name if profile else stats.user_id
    stats.avatar = profile.avatar_url if profile else None
    return stats.to_dict()


async def enrich_servers(
    resolver: IdentityResolver,
    servers: list[ServerInfo],
) -> list[dict]:
    """Replace fallback server names with guild names where available."""
    profiles = await asyncio.gather(*(resolver.resolve_guild(s.id) for s in servers))

    for server, profile in zip(servers, profiles):
        if profile is not None:
            server.name = profile.name
            server.icon = profile.icon_url

    return [server.to_dict() for server in servers]


__all__ = [
    "unique_ids",
    "enrich_entries",
    "enrich_user_stats",
    "enrich_servers",
]
