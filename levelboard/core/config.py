"""
LevelBoard - Configuration Module
=================================

Environment configuration loading and validation for the dashboard.

Values come from the process environment; ``main.py`` loads ``.env`` with
python-dotenv before anything here runs.
"""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from levelboard.core.constants import (
    DEFAULT_DASHBOARD_HOST,
    DEFAULT_DASHBOARD_PORT,
    ENRICHMENT_TTL_SECONDS,
    ENRICHMENT_TIMEOUT_SECONDS,
    ENRICHMENT_BATCH_SIZE,
    ENRICHMENT_BATCH_DELAY_SECONDS,
)
from levelboard.core.logger import logger


# =============================================================================
# Configuration Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    valid: bool
    missing_required: list[str] = field(default_factory=list)
    missing_optional: list[str] = field(default_factory=list)
    invalid_format: list[tuple[str, str]] = field(default_factory=list)  # (var_name, reason)
    warnings: list[tuple[str, str]] = field(default_factory=list)


# Optional environment variables with their descriptions
OPTIONAL_ENV_VARS: dict[str, str] = {
    "DATABASE_PATH": "Path to the leveling bot SQLite file",
    "DISCORD_BOT_TOKEN": "Username/avatar enrichment via the Discord API",
    "DISCORD_API_ENABLED": "Kill switch for Discord API lookups",
    "DEFAULT_GUILD_ID": "Guild used when a request omits serverId",
}

# Variables that must parse as positive numbers when present
NUMERIC_ENV_VARS: list[str] = [
    "DASHBOARD_PORT",
    "ENRICHMENT_TTL_SECONDS",
    "ENRICHMENT_TIMEOUT_MS",
    "ENRICHMENT_BATCH_SIZE",
    "ENRICHMENT_BATCH_DELAY_MS",
]


# =============================================================================
# Dashboard Configuration
# =============================================================================

@dataclass(frozen=True)
class EnrichmentSettings:
    """Tuning for the Discord identity resolver."""
    enabled: bool = False
    ttl_seconds: float = ENRICHMENT_TTL_SECONDS
    timeout_seconds: float = ENRICHMENT_TIMEOUT_SECONDS
    batch_size: int = ENRICHMENT_BATCH_SIZE
    batch_delay_seconds: float = ENRICHMENT_BATCH_DELAY_SECONDS


@dataclass(frozen=True)
class DashboardConfig:
    """Resolved dashboard configuration."""
    database_path: Path
    bot_token: Optional[str]
    default_guild_id: Optional[str]
    host: str = DEFAULT_DASHBOARD_HOST
    port: int = DEFAULT_DASHBOARD_PORT
    enrichment: EnrichmentSettings = field(default_factory=EnrichmentSettings)


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return env.get(name, "").strip().lower() == "true"


def _env_number(env: Mapping[str, str], name: str, default: float) -> float:
    """Read a positive number, falling back to the default when unusable."""
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if math.isfinite(value) and value > 0 else default


def load_config(env: Optional[Mapping[str, str]] = None) -> DashboardConfig:
    """
    Build the dashboard configuration from environment variables.

    Args:
        env: Mapping to read from. Defaults to ``os.environ``.

    Returns:
        DashboardConfig with defaults applied for anything unset or unusable.
    """
    if env is None:
        env = os.environ

    database_path = Path(env.get("DATABASE_PATH") or Path.cwd() / "database.sqlite")

    enrichment = EnrichmentSettings(
        enabled=_env_flag(env, "DISCORD_API_ENABLED"),
        ttl_seconds=_env_number(env, "ENRICHMENT_TTL_SECONDS", ENRICHMENT_TTL_SECONDS),
        timeout_seconds=_env_number(env, "ENRICHMENT_TIMEOUT_MS", ENRICHMENT_TIMEOUT_SECONDS * 1000) / 1000,
        batch_size=int(_env_number(env, "ENRICHMENT_BATCH_SIZE", ENRICHMENT_BATCH_SIZE)),
        batch_delay_seconds=_env_number(
            env, "ENRICHMENT_BATCH_DELAY_MS", ENRICHMENT_BATCH_DELAY_SECONDS * 1000
        ) / 1000,
    )

    return DashboardConfig(
        database_path=database_path,
        bot_token=env.get("DISCORD_BOT_TOKEN") or None,
        default_guild_id=env.get("DEFAULT_GUILD_ID") or None,
        host=env.get("DASHBOARD_HOST") or DEFAULT_DASHBOARD_HOST,
        port=int(_env_number(env, "DASHBOARD_PORT", DEFAULT_DASHBOARD_PORT)),
        enrichment=enrichment,
    )


def validate_config(env: Optional[Mapping[str, str]] = None) -> ConfigValidationResult:
    """
    Validate environment variables at startup.

    Returns:
        ConfigValidationResult with validation status and any issues found.

    Rules:
    - DISCORD_BOT_TOKEN is required once DISCORD_API_ENABLED is "true"
    - Numeric tuning vars must be finite positive numbers when present
    - A missing database file is only a warning (the bot may not have run yet)
    """
    if env is None:
        env = os.environ

    result = ConfigValidationResult(valid=True)

    if _env_flag(env, "DISCORD_API_ENABLED") and not env.get("DISCORD_BOT_TOKEN"):
        result.missing_required.append("DISCORD_BOT_TOKEN")
        result.valid = False

    for var in OPTIONAL_ENV_VARS:
        if not env.get(var):
            result.missing_optional.append(var)

    for var in NUMERIC_ENV_VARS:
        value = env.get(var)
        if not value:
            continue
        try:
            number = float(value)
            if not math.isfinite(number) or number <= 0:
                raise ValueError(value)
        except ValueError:
            result.invalid_format.append((var, "Must be a positive number"))
            result.valid = False

    database_path = load_config(env).database_path
    if not database_path.exists():
        result.warnings.append(("DATABASE_PATH", f"{database_path} does not exist yet"))

    return result


def validate_and_log_config(env: Optional[Mapping[str, str]] = None) -> None:
    """
    Validate configuration and log results.

    Raises:
        ConfigValidationError: If required configuration is missing or malformed.
    """
    result = validate_config(env)

    for var in result.missing_required:
        logger.error("Missing Required Configuration", [
            ("Variable", var),
            ("Reason", "DISCORD_API_ENABLED=true needs a bot token"),
            ("Action", f"Add {var}=<value> to your .env file"),
        ])

    for var, reason in result.invalid_format:
        logger.error("Invalid Configuration Format", [
            ("Variable", var),
            ("Reason", reason),
        ])

    for var, reason in result.warnings:
        logger.warning("Configuration Warning", [
            ("Variable", var),
            ("Reason", reason),
        ])

    if result.missing_optional:
        logger.info("Optional Configuration Not Set", [
            ("Variables", ", ".join(result.missing_optional)),
        ])

    if not result.valid:
        raise ConfigValidationError(
            f"Missing required config: {', '.join(result.missing_required) or 'none'}"
            + (f"; Invalid format: {', '.join(v for v, _ in result.invalid_format)}" if result.invalid_format else "")
        )

    logger.info("Configuration Validated Successfully", [
        ("Optional", f"{len(OPTIONAL_ENV_VARS) - len(result.missing_optional)}/{len(OPTIONAL_ENV_VARS)} configured"),
    ])


__all__ = [
    "ConfigValidationError",
    "ConfigValidationResult",
    "EnrichmentSettings",
    "DashboardConfig",
    "load_config",
    "validate_config",
    "validate_and_log_config",
]
