"""
LevelBoard - Discord Directory Client
=====================================

Thin aiohttp client for the two Discord REST endpoints the dashboard reads:

- GET /guilds/{guild_id}/members/{user_id}
- GET /guilds/{guild_id}

Guild member lookups work with a bot token as long as the bot is in the
guild. Timeouts are applied by the caller so that a cancelled lookup tears
down the in-flight request.
"""

from typing import Optional

import aiohttp

from levelboard.core.constants import DISCORD_API_BASE


# HTTP status code descriptions for logging
HTTP_STATUS_DESCRIPTIONS = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    429: "Rate Limited",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


class DirectoryRequestError(Exception):
    """Raised when the Discord API answers with a non-success status."""

    def __init__(self, status: int, path: str) -> None:
        self.status = status
        self.path = path
        description = HTTP_STATUS_DESCRIPTIONS.get(status, "Unknown")
        super().__init__(f"{path} returned {status} ({description})")


class DiscordDirectoryClient:
    """Discord REST client authenticated with a bot token."""

    def __init__(
        self,
        token: Optional[str],
        base_url: str = DISCORD_API_BASE,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the shared aiohttp session."""
        if self._session is None or self._session.closed:
            headers = {"User-Agent": "LevelBoard (dashboard, 1.0)"}
            if self._token:
                headers["Authorization"] = f"Bot {self._token}"
            self._session = aiohttp.ClientSession(headers=headers)
            self._owns_session = True
        return self._session

    async def _get_json(self, path: str) -> dict:
        session = await self._get_session()
        async with session.get(f"{self._base_url}{path}") as response:
            if response.status >= 400:
                raise DirectoryRequestError(response.status, path)
            payload = await response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"{path} returned {type(payload).__name__}, expected object")
        return payload

    async def get_member(self, guild_id: str, user_id: str) -> dict:
        """Fetch a guild member record (``nick`` plus nested ``user``)."""
        return await self._get_json(f"/guilds/{guild_id}/members/{user_id}")

    async def get_guild(self, guild_id: str) -> dict:
        """Fetch guild metadata (``name``, ``icon``)."""
        return await self._get_json(f"/guilds/{guild_id}")

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None


__all__ = [
    "DiscordDirectoryClient",
    "DirectoryRequestError",
    "HTTP_STATUS_DESCRIPTIONS",
]
