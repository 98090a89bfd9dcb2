"""
LevelBoard - Application
========================

Wires the dashboard together and owns its lifecycle.

    ┌──────────────────────────┐
    │  DashboardAPI (aiohttp)  │
    └────────────┬─────────────┘
         ┌───────┼──────────────┐
         ▼       ▼              ▼
    Leveling  Identity       Settings
    Database  Resolver       Store
   (read-only)  │
                ▼
       DiscordDirectoryClient

One instance of each collaborator is created per process and passed by
reference; nothing is a module-level singleton.
"""

import asyncio
from typing import Optional

from levelboard.core.config import DashboardConfig
from levelboard.core.logger import logger
from levelboard.services.database import LevelingDatabase
from levelboard.services.dashboard_api import DashboardAPI
from levelboard.services.directory import DiscordDirectoryClient, IdentityResolver
from levelboard.services.settings_store import SettingsStore


class Dashboard:
    """The dashboard process: database, resolver, settings and HTTP API."""

    def __init__(self, config: DashboardConfig) -> None:
        self.config = config
        self.database = LevelingDatabase(config.database_path)
        self.directory_client = DiscordDirectoryClient(config.bot_token)
        self.resolver = IdentityResolver(self.directory_client, config.enrichment)
        self.settings_store = SettingsStore()
        self.api = DashboardAPI(
            config=config,
            database=self.database,
            resolver=self.resolver,
            settings_store=self.settings_store,
        )
        self._stopped: Optional[asyncio.Event] = None

    async def run(self) -> None:
        """Start the API and block until ``close`` is called."""
        self._stopped = asyncio.Event()
        await self.api.start()
        await self._stopped.wait()

    async def close(self) -> None:
        """Stop the API and release the HTTP session and database."""
        logger.info("Dashboard Shutting Down")
        try:
            await self.api.stop()
        finally:
            await self.directory_client.close()
            self.database.close()
            if self._stopped is not None:
                self._stopped.set()


__all__ = ["Dashboard"]
