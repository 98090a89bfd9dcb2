"""
LevelBoard - Dashboard API Server
=================================

aiohttp application serving the dashboard's JSON endpoints.

Endpoints:
    GET  /api/leaderboard       ranked users of a server
    GET  /api/users             paged users, or one user's stats with userId
    GET  /api/users/search      users whose ID contains ``q``
    GET  /api/stats             server totals plus detailed statistics
    GET  /api/servers           servers known to the database
    GET  /api/servers/stats     server totals
    GET  /api/settings          settings for a server
    POST /api/settings          validate and store settings (in memory)
    POST /api/cache/clear       drop enrichment and response caches
    GET  /health                liveness, cache and database status
"""

import asyncio
import time
from datetime import datetime, timezone
from json import JSONDecodeError
from typing import Optional

import psutil
from aiohttp import web

from levelboard.core.config import DashboardConfig
from levelboard.core.constants import (
    CACHE_CLEANUP_INTERVAL_SECONDS,
    LEADERBOARD_DEFAULT_LIMIT,
    LEADERBOARD_MAX_LIMIT,
    PAGE_MAX,
    TOP_PERFORMERS_PAGE_SIZE,
    USERS_PAGE_DEFAULT_LIMIT,
    USERS_PAGE_MAX_LIMIT,
)
from levelboard.core.logger import logger
from levelboard.services.database import LevelingDatabase, total_pages
from levelboard.services.directory import IdentityResolver
from levelboard.services.settings_store import SettingsStore
from levelboard.services.dashboard_api.enrichment import (
    enrich_entries,
    enrich_servers,
    enrich_user_stats,
)
from levelboard.services.dashboard_api.middleware import (
    CORS_HEADERS,
    block_server_actions_middleware,
    get_client_ip,
    make_rate_limit_middleware,
    security_headers_middleware,
)
from levelboard.utils.api_cache import RateLimiter, ResponseCache


def _json(data: dict, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, headers=CORS_HEADERS)


def _error(message: str, status: int) -> web.Response:
    return _json({"error": message}, status=status)


def _int_param(
    request: web.Request,
    name: str,
    default: int,
    maximum: Optional[int] = None,
) -> int:
    """Positive integer query param; bad or missing values use the default."""
    try:
        value = int(request.query.get(name, default))
    except ValueError:
        value = default
    value = max(1, value)
    if maximum is not None:
        value = min(value, maximum)
    return value


class DashboardAPI:
    """HTTP API for the leveling dashboard."""

    def __init__(
        self,
        config: DashboardConfig,
        database: LevelingDatabase,
        resolver: IdentityResolver,
        settings_store: SettingsStore,
        response_cache: Optional[ResponseCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._config = config
        self._db = database
        self._resolver = resolver
        self._settings = settings_store
        self._cache = response_cache or ResponseCache()
        self._rate_limiter = rate_limiter or RateLimiter()
        self._start_time: Optional[datetime] = None
        self.app = web.Application(middlewares=[
            security_headers_middleware,
            block_server_actions_middleware,
            make_rate_limit_middleware(self._rate_limiter),
        ])
        self.runner: Optional[web.AppRunner] = None
        self._cleanup_task: Optional[asyncio.Task] = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Configure API routes."""
        self.app.router.add_get("/api/leaderboard", self.handle_leaderboard)
        self.app.router.add_get("/api/users", self.handle_users)
        self.app.router.add_get("/api/users/search", self.handle_user_search)
        self.app.router.add_get("/api/stats", self.handle_stats)
        self.app.router.add_get("/api/servers", self.handle_servers)
        self.app.router.add_get("/api/servers/stats", self.handle_server_stats)
        self.app.router.add_get("/api/settings", self.handle_get_settings)
        self.app.router.add_post("/api/settings", self.handle_save_settings)
        self.app.router.add_post("/api/cache/clear", self.handle_clear_cache)
        self.app.router.add_get("/health", self.handle_health)

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _server_id(self, request: web.Request) -> Optional[str]:
        return request.query.get("serverId") or self._config.default_guild_id

    async def _cached(self, key: str, start_time: float) -> Optional[web.Response]:
        """Serve a cached body if one is fresh."""
        cached = await self._cache.get(key)
        if cached is None:
            return None
        cached["cached"] = True
        cached["response_time_ms"] = round((time.time() - start_time) * 1000, 1)
        return _json(cached)

    async def _store(self, key: str, data: dict, start_time: float) -> web.Response:
        await self._cache.set(key, data)
        data["cached"] = False
        data["response_time_ms"] = round((time.time() - start_time) * 1000, 1)
        return _json(data)

    def _get_uptime(self) -> str:
        """Get formatted uptime string."""
        if not self._start_time:
            return "0m"

        total_seconds = int((datetime.now(timezone.utc) - self._start_time).total_seconds())
        days = total_seconds // 86400
        hours = (total_seconds % 86400) // 3600
        minutes = (total_seconds % 3600) // 60

        if days > 0:
            return f"{days}d {hours}h {minutes}m"
        elif hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    def _get_system_resources(self) -> dict:
        """Get process memory and host CPU/memory usage."""
        try:
            process = psutil.Process()
            sys_mem = psutil.virtual_memory()
            return {
                "process_mem_mb": round(process.memory_info().rss / (1024 * 1024), 1),
                "cpu_percent": round(psutil.cpu_percent(interval=None), 1),
                "mem_percent": round(sys_mem.percent, 1),
            }
        except psutil.Error as e:
            logger.debug("Failed to get system resources", [("Error", str(e))])
            return {}

    # =========================================================================
    # Route Handlers
    # =========================================================================

    async def handle_leaderboard(self, request: web.Request) -> web.Response:
        """GET /api/leaderboard?serverId&limit"""
        start_time = time.time()
        server_id = self._server_id(request)
        if not server_id:
            return _error("Server ID is required", 400)

        limit = _int_param(request, "limit", LEADERBOARD_DEFAULT_LIMIT, LEADERBOARD_MAX_LIMIT)
        cache_key = f"leaderboard:{server_id}:{limit}"
        cached = await self._cached(cache_key, start_time)
        if cached is not None:
            return cached

        try:
            entries = await asyncio.to_thread(self._db.get_leaderboard, server_id, limit)
            data = await enrich_entries(self._resolver, entries, server_id)
        except Exception as e:
            logger.error_tree("Leaderboard API Error", e, [("Server ID", server_id)])
            return _error("Failed to fetch leaderboard data", 500)

        logger.info("Leaderboard API Response", [
            ("IP", get_client_ip(request)),
            ("Server ID", server_id),
            ("Users", str(len(data))),
        ])
        return await self._store(cache_key, {
            "success": True,
            "data": data,
            "count": len(data),
        }, start_time)

    async def handle_users(self, request: web.Request) -> web.Response:
        """GET /api/users?serverId&page&limit or ?serverId&userId"""
        start_time = time.time()
        server_id = self._server_id(request)
        user_id = request.query.get("userId")

        if not server_id:
            return _error("User ID and Server ID are required" if user_id else "Server ID is required", 400)

        if user_id:
            return await self._user_stats(server_id, user_id)

        page = _int_param(request, "page", 1, PAGE_MAX)
        limit = _int_param(request, "limit", USERS_PAGE_DEFAULT_LIMIT, USERS_PAGE_MAX_LIMIT)
        cache_key = f"users:{server_id}:{page}:{limit}"
        cached = await self._cached(cache_key, start_time)
        if cached is not None:
            return cached

        try:
            entries, total = await asyncio.to_thread(self._db.get_all_users, server_id, page, limit)
            data = await enrich_entries(self._resolver, entries, server_id)
        except Exception as e:
            logger.error_tree("Users API Error", e, [("Server ID", server_id), ("Page", str(page))])
            return _error("Failed to fetch user statistics", 500)

        return await self._store(cache_key, {
            "success": True,
            "data": data,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": total_pages(total, limit),
            },
        }, start_time)

    async def _user_stats(self, server_id: str, user_id: str) -> web.Response:
        try:
            stats = await asyncio.to_thread(self._db.get_user_stats, user_id, server_id)
            if stats is None:
                return _error("User not found", 404)
            data = await enrich_user_stats(self._resolver, stats)
        except Exception as e:
            logger.error_tree("User Stats API Error", e, [
                ("Server ID", server_id),
                ("User ID", user_id),
            ])
            return _error("Failed to fetch user statistics", 500)

        return _json({"success": True, "data": data})

    async def handle_user_search(self, request: web.Request) -> web.Response:
        """GET /api/users/search?serverId&q"""
        server_id = self._server_id(request)
        term = request.query.get("q", "").strip()
        if not server_id:
            return _error("Server ID is required", 400)
        if not term:
            return _error("Search term is required", 400)

        try:
            entries = await asyncio.to_thread(self._db.search_users, server_id, term)
            data = await enrich_entries(self._resolver, entries, server_id)
        except Exception as e:
            logger.error_tree("User Search API Error", e, [("Server ID", server_id), ("Term", term)])
            return _error("Failed to search users", 500)

        return _json({"success": True, "data": data, "count": len(data)})

    async def handle_stats(self, request: web.Request) -> web.Response:
        """GET /api/stats?serverId&page&pageSize"""
        start_time = time.time()
        server_id = self._server_id(request)
        if not server_id:
            return _error("Server ID is required", 400)

        page = _int_param(request, "page", 1, PAGE_MAX)
        page_size = _int_param(request, "pageSize", TOP_PERFORMERS_PAGE_SIZE, USERS_PAGE_MAX_LIMIT)
        cache_key = f"stats:{server_id}:{page}:{page_size}"
        cached = await self._cached(cache_key, start_time)
        if cached is not None:
            return cached

        try:
            server_stats = await asyncio.to_thread(self._db.get_server_stats, server_id)
            detailed = await asyncio.to_thread(
                self._db.get_detailed_statistics, server_id, page, page_size
            )
            performers = await enrich_entries(self._resolver, detailed.top_performers, server_id)
        except Exception as e:
            logger.error_tree("Statistics API Error", e, [("Server ID", server_id)])
            return _error("Failed to fetch statistics", 500)

        data = {"serverStats": server_stats.to_dict(), **detailed.to_dict()}
        data["topPerformers"] = performers

        return await self._store(cache_key, {
            "success": True,
            "data": data,
            "pagination": {
                "page": page,
                "pageSize": page_size,
                "total": detailed.top_performers_total,
                "totalPages": total_pages(detailed.top_performers_total, page_size),
            },
        }, start_time)

    async def handle_servers(self, request: web.Request) -> web.Response:
        """GET /api/servers"""
        start_time = time.time()
        cached = await self._cached("servers", start_time)
        if cached is not None:
            return cached

        try:
            servers = await asyncio.to_thread(self._db.get_servers)
            data = await enrich_servers(self._resolver, servers)
        except Exception as e:
            logger.error_tree("Servers API Error", e)
            return _error("Failed to fetch servers", 500)

        return await self._store("servers", {
            "success": True,
            "data": data,
            "count": len(data),
        }, start_time)

    async def handle_server_stats(self, request: web.Request) -> web.Response:
        """GET /api/servers/stats?serverId"""
        server_id = self._server_id(request)
        if not server_id:
            return _error("Server ID is required", 400)

        try:
            stats = await asyncio.to_thread(self._db.get_server_stats, server_id)
        except Exception as e:
            logger.error_tree("Server Stats API Error", e, [("Server ID", server_id)])
            return _error("Failed to fetch server statistics", 500)

        return _json({"success": True, "data": stats.to_dict()})

    async def handle_get_settings(self, request: web.Request) -> web.Response:
        """GET /api/settings?serverId"""
        server_id = self._server_id(request)
        if not server_id:
            return _error("Server ID is required", 400)
        return _json({"success": True, "data": self._settings.get(server_id).to_dict()})

    async def handle_save_settings(self, request: web.Request) -> web.Response:
        """POST /api/settings with ``{"serverId": ..., "settings": {...}}``"""
        try:
            body = await request.json()
        except (JSONDecodeError, UnicodeDecodeError):
            return _error("Request body must be JSON", 400)

        if not isinstance(body, dict):
            return _error("Request body must be a JSON object", 400)

        server_id = body.get("serverId")
        settings = body.get("settings")
        if not server_id:
            return _error("Server ID is required", 400)
        if not isinstance(settings, dict):
            return _error("Settings are required", 400)

        try:
            stored = self._settings.save(str(server_id), settings)
        except Exception as e:
            logger.error_tree("Settings API Error", e, [("Server ID", str(server_id))])
            return _error("Failed to save settings", 500)

        logger.info("Settings Saved", [
            ("Server ID", str(server_id)),
            ("Persistence", "In-memory only"),
        ])
        return _json({
            "success": True,
            "data": stored.to_dict(),
            "message": "Settings saved successfully",
        })

    async def handle_clear_cache(self, request: web.Request) -> web.Response:
        """POST /api/cache/clear"""
        enrichment_removed = self._resolver.invalidate_all()
        responses_removed = await self._cache.clear()
        logger.info("Dashboard Caches Cleared", [
            ("IP", get_client_ip(request)),
            ("Enrichment Entries", str(enrichment_removed)),
            ("Responses", str(responses_removed)),
        ])
        return _json({
            "success": True,
            "data": {
                "enrichment_entries": enrichment_removed,
                "responses": responses_removed,
            },
        })

    async def handle_health(self, request: web.Request) -> web.Response:
        """GET /health"""
        database = await asyncio.to_thread(self._db.health_check)
        return _json({
            "status": "healthy" if database["healthy"] else "degraded",
            "uptime": self._get_uptime(),
            "database": database,
            "enrichment": self._resolver.stats(),
            "system": self._get_system_resources(),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        })

    # =========================================================================
    # Server Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the API server."""
        self._start_time = datetime.now(timezone.utc)
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self._config.host, self._config.port)
        await site.start()

        self._cleanup_task = asyncio.create_task(self._cleanup_loop())

        logger.success("Dashboard API Started", [
            ("Host", self._config.host),
            ("Port", str(self._config.port)),
            ("Database", str(self._config.database_path)),
            ("Discord Enrichment", "Enabled" if self._resolver.enabled else "Disabled"),
        ])

    async def stop(self) -> None:
        """Stop the API server."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass

        if self.runner:
            await self.runner.cleanup()
            logger.info("Dashboard API Stopped")

    async def _cleanup_loop(self) -> None:
        """Periodically drop stale rate-limit windows and expired cache entries."""
        while True:
            try:
                await asyncio.sleep(CACHE_CLEANUP_INTERVAL_SECONDS)
                clients = await self._rate_limiter.cleanup()
                responses = await self._cache.cleanup_expired()
                profiles = self._resolver.cleanup_expired()
                logger.debug("Cache Cleanup", [
                    ("Rate Limit Clients", str(clients)),
                    ("Responses", str(responses)),
                    ("Profiles", str(profiles)),
                ])
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.debug("Cache cleanup error", [("Error", str(e))])


__all__ = ["DashboardAPI"]
