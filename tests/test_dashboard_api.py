"""
Endpoint tests for the dashboard API, served in-process with aiohttp's test
server over a temporary leveling database and a fake Discord directory.
"""

from contextlib import asynccontextmanager
from dataclasses import replace

import pytest
from aiohttp.test_utils import TestClient, TestServer

from levelboard.core.config import EnrichmentSettings
from levelboard.core.constants import PAGE_MAX
from levelboard.services.dashboard_api import DashboardAPI
from levelboard.services.database import LevelingDatabase
from levelboard.services.directory import IdentityResolver
from levelboard.services.settings_store import SettingsStore
from levelboard.utils.api_cache import RateLimiter

from conftest import FakeDirectoryClient, member_record


def _directory() -> FakeDirectoryClient:
    return FakeDirectoryClient(
        members={
            ("g1", "222"): member_record("bob", global_name="Bobby", avatar="b0b"),
            ("g1", "111"): 500,
        },
        guilds={"g1": {"name": "Guild One", "icon": None}},
    )


@asynccontextmanager
async def api_client(config, directory=None, rate_limiter=None):
    directory = directory or _directory()
    database = LevelingDatabase(config.database_path)
    api = DashboardAPI(
        config=config,
        database=database,
        resolver=IdentityResolver(directory, config.enrichment),
        settings_store=SettingsStore(),
        rate_limiter=rate_limiter,
    )
    try:
        async with TestClient(TestServer(api.app)) as client:
            yield client, directory
    finally:
        database.close()


# =============================================================================
# Leaderboard and Users
# =============================================================================

@pytest.mark.asyncio
async def test_leaderboard_requires_server_id(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/leaderboard")
        assert resp.status == 400
        assert (await resp.json())["error"] == "Server ID is required"


@pytest.mark.asyncio
async def test_default_guild_is_used_without_server_id(dashboard_config):
    config = replace(dashboard_config, default_guild_id="g1")
    async with api_client(config) as (client, _):
        resp = await client.get("/api/leaderboard")
        assert resp.status == 200
        assert (await resp.json())["count"] == 4


@pytest.mark.asyncio
async def test_leaderboard_is_enriched_with_fallbacks(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/leaderboard", params={"serverId": "g1", "limit": "2"})
        body = await resp.json()

    assert resp.status == 200
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert body["success"] is True
    assert body["cached"] is False

    first, second = body["data"]
    assert first["user_id"] == "222"
    assert first["username"] == "Bobby"
    assert first["avatar"] == "https://cdn.discordapp.com/avatars/222/b0b.png"
    assert second["user_id"] == "111"
    assert second["username"] == "111"
    assert second["avatar"] is None


@pytest.mark.asyncio
async def test_leaderboard_is_served_from_response_cache(dashboard_config):
    async with api_client(dashboard_config) as (client, directory):
        await client.get("/api/leaderboard", params={"serverId": "g1"})
        resp = await client.get("/api/leaderboard", params={"serverId": "g1"})
        body = await resp.json()

    assert body["cached"] is True
    assert len(directory.member_calls) == 4


@pytest.mark.asyncio
async def test_disabled_enrichment_leaves_raw_ids(dashboard_config):
    config = replace(dashboard_config, enrichment=EnrichmentSettings(enabled=False))
    async with api_client(config) as (client, directory):
        resp = await client.get("/api/leaderboard", params={"serverId": "g1"})
        body = await resp.json()

    assert [row["username"] for row in body["data"]] == ["222", "111", "444", "333"]
    assert directory.member_calls == []


@pytest.mark.asyncio
async def test_users_page_enriches_only_that_page(dashboard_config):
    async with api_client(dashboard_config) as (client, directory):
        resp = await client.get("/api/users", params={"serverId": "g1", "page": "2", "limit": "2"})
        body = await resp.json()

    assert body["pagination"] == {"page": 2, "limit": 2, "total": 4, "totalPages": 2}
    assert [row["user_id"] for row in body["data"]] == ["444", "333"]
    assert "voice_time" in body["data"][0]
    assert sorted(uid for _, uid in directory.member_calls) == ["333", "444"]


@pytest.mark.asyncio
async def test_single_user_stats(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        found = await client.get("/api/users", params={"serverId": "g1", "userId": "222"})
        missing = await client.get("/api/users", params={"serverId": "g1", "userId": "999"})
        found_body = await found.json()

    assert found_body["data"]["username"] == "Bobby"
    assert found_body["data"]["exp"] == 2500
    assert missing.status == 404


@pytest.mark.asyncio
async def test_user_search(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/users/search", params={"serverId": "g1", "q": "22"})
        empty = await client.get("/api/users/search", params={"serverId": "g1"})
        body = await resp.json()

    assert body["count"] == 1
    assert body["data"][0]["rank"] == 1
    assert empty.status == 400


# =============================================================================
# Statistics and Servers
# =============================================================================

@pytest.mark.asyncio
async def test_stats_endpoint(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/stats", params={"serverId": "g1", "pageSize": "2"})
        body = await resp.json()

    data = body["data"]
    assert data["serverStats"]["total_users"] == 4
    assert data["averageLevel"] == 3.75
    assert [p["username"] for p in data["topPerformers"]] == ["Bobby", "111"]
    assert body["pagination"]["totalPages"] == 2


@pytest.mark.asyncio
async def test_servers_use_guild_names_when_resolved(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/servers")
        body = await resp.json()

    names = {server["id"]: server["name"] for server in body["data"]}
    assert names == {"g1": "Guild One", "g2": "Server g2..."}


@pytest.mark.asyncio
async def test_server_stats(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/servers/stats", params={"serverId": "g2"})
        body = await resp.json()

    assert body["data"]["total_users"] == 1
    assert body["data"]["total_exp"] == 50


# =============================================================================
# Settings and Cache
# =============================================================================

@pytest.mark.asyncio
async def test_settings_round_trip(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        saved = await client.post("/api/settings", json={
            "serverId": "g1",
            "settings": {"xpRate": 50, "levelUpMessages": True},
        })
        fetched = await client.get("/api/settings", params={"serverId": "g1"})
        saved_body = await saved.json()
        fetched_body = await fetched.json()

    assert saved.status == 200
    assert saved_body["message"] == "Settings saved successfully"
    assert fetched_body["data"]["xpRate"] == 10.0
    assert fetched_body["data"]["levelUpMessages"] is True


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"settings": {"xpRate": 2}},
    {"serverId": "g1"},
    {"serverId": "g1", "settings": "nope"},
])
async def test_settings_rejects_incomplete_payload(payload, dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.post("/api/settings", json=payload)
        assert resp.status == 400


@pytest.mark.asyncio
async def test_settings_rejects_invalid_json(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.post("/api/settings", data="{not json")
        assert resp.status == 400


@pytest.mark.asyncio
async def test_cache_clear_forces_refetch(dashboard_config):
    async with api_client(dashboard_config) as (client, directory):
        await client.get("/api/leaderboard", params={"serverId": "g1"})
        resp = await client.post("/api/cache/clear")
        body = await resp.json()
        await client.get("/api/leaderboard", params={"serverId": "g1"})

    assert body["data"] == {"enrichment_entries": 1, "responses": 1}
    assert len(directory.member_calls) == 8


# =============================================================================
# Health and Middleware
# =============================================================================

@pytest.mark.asyncio
async def test_health_reports_database_and_enrichment(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/health")
        body = await resp.json()

    assert body["status"] == "healthy"
    assert body["database"]["healthy"] is True
    assert body["enrichment"]["enabled"] is True
    assert "generated_at" in body


@pytest.mark.asyncio
async def test_health_is_degraded_without_database(dashboard_config, tmp_path):
    config = replace(dashboard_config, database_path=tmp_path / "missing.db")
    async with api_client(config) as (client, _):
        resp = await client.get("/health")
        body = await resp.json()

    assert body["status"] == "degraded"


@pytest.mark.asyncio
async def test_server_action_requests_are_blocked(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.post("/api/settings", headers={"Next-Action": "abc"}, json={})
        assert resp.status == 400
        assert await resp.text() == "Server Actions are not enabled"


@pytest.mark.asyncio
async def test_rate_limit_returns_retry_after(dashboard_config):
    limiter = RateLimiter(requests_per_minute=100, burst_limit=1)
    async with api_client(dashboard_config, rate_limiter=limiter) as (client, _):
        await client.get("/api/servers/stats", params={"serverId": "g1"})
        limited = await client.get("/api/servers/stats", params={"serverId": "g1"})
        health = await client.get("/health")

    assert limited.status == 429
    assert limited.headers["Retry-After"] == "1"
    assert health.status == 200


@pytest.mark.asyncio
async def test_unknown_route_still_gets_security_headers(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/does-not-exist")

    assert resp.status == 404
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"


# =============================================================================
# Paging Bounds
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/api/users", "/api/stats"])
async def test_huge_page_is_capped_and_returns_empty_page(path, dashboard_config):
    async with api_client(dashboard_config) as (client, directory):
        resp = await client.get(path, params={"serverId": "g1", "page": str(10**20)})
        body = await resp.json()

    assert resp.status == 200
    assert body["pagination"]["page"] == PAGE_MAX
    assert directory.member_calls == []


@pytest.mark.asyncio
async def test_huge_page_on_users_has_no_rows(dashboard_config):
    async with api_client(dashboard_config) as (client, _):
        resp = await client.get("/api/users", params={"serverId": "g1", "page": str(10**20)})
        body = await resp.json()

    assert body["data"] == []
    assert body["pagination"]["total"] == 4
