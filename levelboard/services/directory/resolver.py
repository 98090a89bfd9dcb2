"""
LevelBoard - Identity Resolver
==============================

Resolves Discord user and guild IDs to display names and avatars.

Every lookup is best effort. Timeouts, HTTP errors, network errors and the
DISCORD_API_ENABLED kill switch all end in "no data": ``resolve_one`` returns
None and ``resolve_many`` leaves the ID out of its mapping. Callers fall back
to whatever they already have (the raw ID, a default avatar).

Batching:
    resolve_many splits IDs into batches of ``batch_size``. Each batch is
    fanned out concurrently and joined before the next one starts, with
    ``batch_delay_seconds`` between batches (none after the last).
"""

import asyncio
import time
from collections import Counter
from typing import Awaitable, Callable, Optional, Protocol, Sequence

import aiohttp

from levelboard.core.config import EnrichmentSettings
from levelboard.core.logger import logger
from levelboard.models import GuildProfile, MemberProfile
from levelboard.services.directory.cache import EnrichmentCache
from levelboard.services.directory.client import DirectoryRequestError
from levelboard.services.directory.results import (
    LookupResult,
    Resolved,
    Unresolved,
    UnresolvedReason,
    unwrap,
)
from levelboard.utils.formatting import avatar_url, guild_icon_url


class DirectoryClient(Protocol):
    async def get_member(self, guild_id: str, user_id: str) -> dict: ...

    async def get_guild(self, guild_id: str) -> dict: ...


# =============================================================================
# Record Parsing
# =============================================================================

def member_profile_from_record(user_id: str, record: dict) -> MemberProfile:
    """
    Build a MemberProfile from a guild member record.

    Name precedence: guild nickname, then global display name, then username.

    Raises:
        ValueError: If the record carries no usable name.
    """
    user = record.get("user") or {}
    name = record.get("nick") or user.get("global_name") or user.get("username")
    if not name:
        raise ValueError(f"Member record for {user_id} has no name fields")
    return MemberProfile(
        display_name=name,
        avatar_url=avatar_url(user_id, user.get("avatar")),
    )


def guild_profile_from_record(guild_id: str, record: dict) -> GuildProfile:
    """Build a GuildProfile from a guild record."""
    name = record.get("name")
    if not name:
        raise ValueError(f"Guild record for {guild_id} has no name")
    return GuildProfile(name=name, icon_url=guild_icon_url(guild_id, record.get("icon")))


# =============================================================================
# Identity Resolver
# =============================================================================

class IdentityResolver:
    """
    Cached, batched Discord lookups that never raise to the caller.

    One instance is created per process and passed to whatever needs
    enrichment. Tests build a fresh instance per case.
    """

    def __init__(
        self,
        client: DirectoryClient,
        settings: EnrichmentSettings = EnrichmentSettings(),
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            client: Directory client (DiscordDirectoryClient in production)
            settings: Kill switch, TTL, timeout and batching tuning
            clock: Time source for cache expiry
            sleep: Coroutine used for the inter-batch delay
        """
        self._client = client
        self.settings = settings
        self._sleep = sleep
        self._members: EnrichmentCache[MemberProfile] = EnrichmentCache(settings.ttl_seconds, clock)
        self._guilds: EnrichmentCache[GuildProfile] = EnrichmentCache(settings.ttl_seconds, clock)
        self._counters: Counter = Counter()

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    # =========================================================================
    # Tagged Lookups
    # =========================================================================

    async def lookup_member(self, user_id: str, guild_id: str) -> LookupResult[MemberProfile]:
        """Resolve one member, reporting why when nothing was found."""
        if not self.enabled:
            self._counters[UnresolvedReason.DISABLED.value] += 1
            return Unresolved(UnresolvedReason.DISABLED)

        key = (user_id, guild_id)
        cached = self._members.get(key)
        if cached is not None:
            self._counters["hits"] += 1
            return Resolved(cached, cached=True)

        result = await self._fetch(
            lambda: self._client.get_member(guild_id, user_id),
            lambda record: member_profile_from_record(user_id, record),
            kind="Guild Member",
            context=[("User ID", user_id), ("Guild ID", guild_id)],
        )
        if isinstance(result, Resolved):
            self._members.set(key, result.value)
        return result

    async def lookup_guild(self, guild_id: str) -> LookupResult[GuildProfile]:
        """Resolve guild metadata, reporting why when nothing was found."""
        if not self.enabled:
            self._counters[UnresolvedReason.DISABLED.value] += 1
            return Unresolved(UnresolvedReason.DISABLED)

        cached = self._guilds.get(guild_id)
        if cached is not None:
            self._counters["hits"] += 1
            return Resolved(cached, cached=True)

        result = await self._fetch(
            lambda: self._client.get_guild(guild_id),
            lambda record: guild_profile_from_record(guild_id, record),
            kind="Guild",
            context=[("Guild ID", guild_id)],
        )
        if isinstance(result, Resolved):
            self._guilds.set(guild_id, result.value)
        return result

    async def _fetch(self, request, parse, kind: str, context: list) -> LookupResult:
        """Run one bounded request and classify the outcome."""
        self._counters["lookups"] += 1
        timeout = self.settings.timeout_seconds

        try:
            record = await asyncio.wait_for(request(), timeout=timeout)
            value = parse(record)
        except asyncio.TimeoutError:
            self._counters[UnresolvedReason.TIMEOUT.value] += 1
            logger.warning(f"Timeout Fetching {kind}", context + [
                ("Timeout", f"{timeout * 1000:.0f}ms"),
            ])
            return Unresolved(UnresolvedReason.TIMEOUT)
        except DirectoryRequestError as e:
            self._counters[UnresolvedReason.UNAVAILABLE.value] += 1
            logger.warning(f"Failed To Fetch {kind}", context + [
                ("Status", str(e.status)),
                ("Error", str(e)),
            ])
            return Unresolved(UnresolvedReason.UNAVAILABLE, detail=str(e.status))
        except (aiohttp.ClientError, ValueError) as e:
            self._counters[UnresolvedReason.UNAVAILABLE.value] += 1
            logger.warning(f"Error Fetching {kind}", context + [
                ("Type", type(e).__name__),
                ("Error", str(e)),
            ])
            return Unresolved(UnresolvedReason.UNAVAILABLE, detail=type(e).__name__)
        except Exception as e:
            self._counters[UnresolvedReason.UNAVAILABLE.value] += 1
            logger.error_tree(f"Unexpected Error Fetching {kind}", e, context)
            return Unresolved(UnresolvedReason.UNAVAILABLE, detail=type(e).__name__)

        self._counters["resolved"] += 1
        return Resolved(value)

    # =========================================================================
    # Public API
    # =========================================================================

    async def resolve_one(self, user_id: str, guild_id: str) -> Optional[MemberProfile]:
        """Display metadata for one member, or None."""
        return unwrap(await self.lookup_member(user_id, guild_id))

    async def resolve_guild(self, guild_id: str) -> Optional[GuildProfile]:
        """Display metadata for one guild, or None."""
        return unwrap(await self.lookup_guild(guild_id))

    async def resolve_many(
        self,
        user_ids: Sequence[str],
        guild_id: str,
    ) -> dict[str, MemberProfile]:
        """
        Resolve many members of one guild in rate-limited batches.

        Args:
            user_ids: IDs to resolve (callers deduplicate)
            guild_id: Guild the lookups are scoped to

        Returns:
            Mapping of user ID to profile; unresolved IDs are absent
        """
        ids = list(user_ids)
        if not ids or not self.enabled:
            return {}

        results: dict[str, MemberProfile] = {}
        batch_size = max(1, self.settings.batch_size)

        for start in range(0, len(ids), batch_size):
            batch = ids[start:start + batch_size]
            profiles = await asyncio.gather(
                *(self.resolve_one(user_id, guild_id) for user_id in batch)
            )
            for user_id, profile in zip(batch, profiles):
                if profile is not None:
                    results[user_id] = profile

            if start + batch_size < len(ids):
                await self._sleep(self.settings.batch_delay_seconds)

        logger.debug("Resolved Guild Members", [
            ("Guild ID", guild_id),
            ("Requested", str(len(ids))),
            ("Resolved", str(len(results))),
        ])
        return results

    def invalidate_all(self) -> int:
        """Clear every cached member and guild. Returns entries removed."""
        removed = self._members.clear() + self._guilds.clear()
        logger.info("Enrichment Cache Cleared", [
            ("Removed Entries", str(removed)),
        ])
        return removed

    def cleanup_expired(self) -> int:
        """Drop expired entries (used by the housekeeping loop)."""
        return self._members.cleanup_expired() + self._guilds.cleanup_expired()

    def stats(self) -> dict:
        """Counters and cache sizes for the health endpoint."""
        return {
            "enabled": self.enabled,
            "cached_members": self._members.size,
            "cached_guilds": self._guilds.size,
            "hits": self._counters["hits"],
            "lookups": self._counters["lookups"],
            "resolved": self._counters["resolved"],
            "timeouts": self._counters[UnresolvedReason.TIMEOUT.value],
            "unavailable": self._counters[UnresolvedReason.UNAVAILABLE.value],
            "disabled": self._counters[UnresolvedReason.DISABLED.value],
        }


__all__ = [
    "IdentityResolver",
    "DirectoryClient",
    "member_profile_from_record",
    "guild_profile_from_record",
]
