"""
LevelBoard - Constants
======================

Centralized constants for the Discord API, enrichment tuning and query limits.
"""


# =============================================================================
# Discord API
# =============================================================================

DISCORD_API_BASE = "https://discord.com/api/v10"
DISCORD_CDN_BASE = "https://cdn.discordapp.com"


# =============================================================================
# Enrichment Defaults
# =============================================================================

ENRICHMENT_TTL_SECONDS = 60 * 30
ENRICHMENT_TIMEOUT_SECONDS = 3.0
ENRICHMENT_BATCH_SIZE = 10
ENRICHMENT_BATCH_DELAY_SECONDS = 0.1


# =============================================================================
# API Server
# =============================================================================

DEFAULT_DASHBOARD_HOST = "0.0.0.0"
DEFAULT_DASHBOARD_PORT = 3000
DEFAULT_CACHE_TTL_SECONDS = 15
DEFAULT_RATE_LIMIT_PER_MINUTE = 120
DEFAULT_BURST_LIMIT = 20
CACHE_CLEANUP_INTERVAL_SECONDS = 300


# =============================================================================
# Query Limits
# =============================================================================

LEADERBOARD_DEFAULT_LIMIT = 100
LEADERBOARD_MAX_LIMIT = 1000
USERS_PAGE_DEFAULT_LIMIT = 50
USERS_PAGE_MAX_LIMIT = 200
SEARCH_RESULT_LIMIT = 50
TOP_PERFORMERS_PAGE_SIZE = 10
PAGE_MAX = 100_000


# =============================================================================
# Display
# =============================================================================

SERVER_NAME_ID_PREVIEW_LENGTH = 10


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Discord
    "DISCORD_API_BASE",
    "DISCORD_CDN_BASE",
    # Enrichment
    "ENRICHMENT_TTL_SECONDS",
    "ENRICHMENT_TIMEOUT_SECONDS",
    "ENRICHMENT_BATCH_SIZE",
    "ENRICHMENT_BATCH_DELAY_SECONDS",
    # API
    "DEFAULT_DASHBOARD_HOST",
    "DEFAULT_DASHBOARD_PORT",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_RATE_LIMIT_PER_MINUTE",
    "DEFAULT_BURST_LIMIT",
    "CACHE_CLEANUP_INTERVAL_SECONDS",
    # Query limits
    "LEADERBOARD_DEFAULT_LIMIT",
    "LEADERBOARD_MAX_LIMIT",
    "USERS_PAGE_DEFAULT_LIMIT",
    "USERS_PAGE_MAX_LIMIT",
    "SEARCH_RESULT_LIMIT",
    "TOP_PERFORMERS_PAGE_SIZE",
    "PAGE_MAX",
    # Display
    "SERVER_NAME_ID_PREVIEW_LENGTH",
]
