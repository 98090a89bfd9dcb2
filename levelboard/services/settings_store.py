"""
LevelBoard - Settings Store
===========================

In-memory per-server settings edited from the dashboard.

Settings live only for the life of the process and are not read by the bot.
Input from the settings form is validated and clamped before it is stored.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional


XP_RATE_RANGE = (0.1, 10.0)
AUTO_ROLE_THRESHOLD_RANGE = (1, 100)
DEFAULT_AUTO_ROLE_THRESHOLD = 10


@dataclass
class ServerSettings:
    """Dashboard-editable settings for one server."""
    server_id: str
    level_up_messages: bool = True
    level_up_channel: str = ""
    xp_rate: float = 1.0
    voice_xp_rate: float = 1.0
    enabled_channels: list = field(default_factory=list)
    disabled_channels: list = field(default_factory=list)
    moderator_roles: list = field(default_factory=list)
    auto_role_enabled: bool = False
    auto_role_threshold: int = DEFAULT_AUTO_ROLE_THRESHOLD
    auto_role_id: str = ""

    def to_dict(self) -> dict:
        """Wire form used by the settings page (camelCase keys)."""
        return {
            "serverId": self.server_id,
            "levelUpMessages": self.level_up_messages,
            "levelUpChannel": self.level_up_channel,
            "xpRate": self.xp_rate,
            "voiceXpRate": self.voice_xp_rate,
            "enabledChannels": list(self.enabled_channels),
            "disabledChannels": list(self.disabled_channels),
            "moderatorRoles": list(self.moderator_roles),
            "autoRoleEnabled": self.auto_role_enabled,
            "autoRoleThreshold": self.auto_role_threshold,
            "autoRoleId": self.auto_role_id,
        }


def _clamp_number(value: Any, low: float, high: float, default: float) -> float:
    """Coerce to a number in [low, high]; unusable or zero input gives default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = default
    if math.isnan(number) or number == 0:
        number = default
    return max(low, min(high, number))


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, list) else []


def _as_text(value: Any) -> str:
    return str(value) if value else ""


def validate_settings(server_id: str, raw: dict) -> ServerSettings:
    """Build ServerSettings from untrusted form input."""
    low, high = AUTO_ROLE_THRESHOLD_RANGE
    return ServerSettings(
        server_id=server_id,
        level_up_messages=bool(raw.get("levelUpMessages")),
        level_up_channel=_as_text(raw.get("levelUpChannel")),
        xp_rate=_clamp_number(raw.get("xpRate"), *XP_RATE_RANGE, default=1.0),
        voice_xp_rate=_clamp_number(raw.get("voiceXpRate"), *XP_RATE_RANGE, default=1.0),
        enabled_channels=_as_list(raw.get("enabledChannels")),
        disabled_channels=_as_list(raw.get("disabledChannels")),
        moderator_roles=_as_list(raw.get("moderatorRoles")),
        auto_role_enabled=bool(raw.get("autoRoleEnabled")),
        auto_role_threshold=int(_clamp_number(
            raw.get("autoRoleThreshold"), low, high, default=DEFAULT_AUTO_ROLE_THRESHOLD
        )),
        auto_role_id=_as_text(raw.get("autoRoleId")),
    )


class SettingsStore:
    """Process-local settings keyed by server ID."""

    def __init__(self) -> None:
        self._settings: dict[str, ServerSettings] = {}

    def get(self, server_id: str) -> ServerSettings:
        """Stored settings for a server, or the defaults."""
        stored: Optional[ServerSettings] = self._settings.get(server_id)
        return stored if stored is not None else ServerSettings(server_id=server_id)

    def save(self, server_id: str, raw: dict) -> ServerSettings:
        """Validate and store settings. Returns what was stored."""
        settings = validate_settings(server_id, raw)
        self._settings[server_id] = settings
        return settings

    def __len__(self) -> int:
        return len(self._settings)


__all__ = ["ServerSettings", "SettingsStore", "validate_settings"]
