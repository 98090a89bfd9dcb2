"""
Shared fixtures and fakes for the LevelBoard test suite.
"""

import asyncio
import os
import sqlite3
import tempfile

# Keep test runs from writing into the repository's logs/ folder
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="levelboard-logs-"))

import pytest

from levelboard.core.config import DashboardConfig, EnrichmentSettings
from levelboard.services.directory.client import DirectoryRequestError


# =============================================================================
# Fakes
# =============================================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def member_record(username: str, global_name=None, nick=None, avatar=None) -> dict:
    return {
        "nick": nick,
        "user": {
            "id": "0",
            "username": username,
            "global_name": global_name,
            "avatar": avatar,
        },
    }


class FakeDirectoryClient:
    """
    In-memory directory. Each member entry is a record dict, an exception to
    raise, or an int HTTP status to fail with.
    """

    def __init__(self, members=None, guilds=None, latency: float = 0.0) -> None:
        self.members: dict = members or {}
        self.guilds: dict = guilds or {}
        self.latency = latency
        self.member_calls: list[tuple[str, str]] = []
        self.guild_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0
        self.sleep_marker = None  # RecordingSleep, to tag calls with their batch

        self.call_batches: list[int] = []

    async def _respond(self, entry, path: str):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        if entry is None:
            raise DirectoryRequestError(404, path)
        if isinstance(entry, int):
            raise DirectoryRequestError(entry, path)
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def get_member(self, guild_id: str, user_id: str) -> dict:
        self.member_calls.append((guild_id, user_id))
        if self.sleep_marker is not None:
            self.call_batches.append(len(self.sleep_marker.delays))
        entry = self.members.get((guild_id, user_id))
        return await self._respond(entry, f"/guilds/{guild_id}/members/{user_id}")

    async def get_guild(self, guild_id: str) -> dict:
        self.guild_calls.append(guild_id)
        return await self._respond(self.guilds.get(guild_id), f"/guilds/{guild_id}")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def enabled_settings():
    return EnrichmentSettings(
        enabled=True,
        ttl_seconds=60,
        timeout_seconds=0.5,
        batch_size=10,
        batch_delay_seconds=0.1,
    )


@pytest.fixture
def leveling_db_path(tmp_path):
    """A bot-shaped SQLite file with two guilds."""
    path = tmp_path / "leveling.db"
    conn = sqlite3.connect(path)
    conn.execute(
        """CREATE TABLE users (
               user_id TEXT NOT NULL,
               guild_id TEXT NOT NULL,
               xp INTEGER NOT NULL DEFAULT 0,
               level INTEGER NOT NULL DEFAULT 1,
               voice_total_time INTEGER NOT NULL DEFAULT 0,
               PRIMARY KEY (user_id, guild_id)
           )"""
    )
    conn.executemany(
        "INSERT INTO users (user_id, guild_id, xp, level, voice_total_time) VALUES (?, ?, ?, ?, ?)",
        [
            ("111", "g1", 900, 4, 3600),
            ("222", "g1", 2500, 6, 7200),
            ("333", "g1", 100, 2, 0),
            ("444", "g1", 400, 3, 60),
            ("1234", "g2", 50, 1, 0),
        ],
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def dashboard_config(leveling_db_path):
    return DashboardConfig(
        database_path=leveling_db_path,
        bot_token="test-token",
        default_guild_id=None,
        enrichment=EnrichmentSettings(enabled=True, timeout_seconds=0.5),
    )
