"""
LevelBoard - Data Models
========================

Dataclasses for rows read from the leveling bot database and for the
display metadata attached to them.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional


# =============================================================================
# Display Metadata
# =============================================================================

@dataclass(frozen=True)
class MemberProfile:
    """Display metadata for one member of one guild."""
    display_name: str
    avatar_url: Optional[str] = None


@dataclass(frozen=True)
class GuildProfile:
    """Display metadata for a guild."""
    name: str
    icon_url: Optional[str] = None


# =============================================================================
# Leveling Rows
# =============================================================================

@dataclass
class LeaderboardEntry:
    """One ranked row of a guild leaderboard."""
    rank: int
    user_id: str
    username: str
    exp: int
    level: int
    avatar: Optional[str] = None
    messages: int = 0
    coins: int = 0
    voice_time: Optional[int] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        if self.voice_time is None:
            data.pop("voice_time")
        return data


@dataclass
class UserStats:
    """Stats for a single user in a single guild."""
    user_id: str
    server_id: str
    exp: int
    level: int
    messages: int = 0
    voice_time: int = 0
    coins: int = 0
    username: Optional[str] = None
    avatar: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ServerInfo:
    """A guild known to the database."""
    id: str
    name: str
    icon: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ServerStats:
    """Server-wide aggregate counts."""
    total_users: int = 0
    total_messages: int = 0  # not tracked by the bot
    total_exp: int = 0
    active_users_today: int = 0  # not tracked by the bot

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LevelBucket:
    """How many users sit at one level."""
    level: int
    count: int


@dataclass
class DetailedStatistics:
    """Aggregates backing the statistics page."""
    level_distribution: list[LevelBucket] = field(default_factory=list)
    top_performers: list[LeaderboardEntry] = field(default_factory=list)
    top_performers_total: int = 0
    average_level: float = 0.0
    total_voice_time: int = 0
    recent_activity: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "levelDistribution": [asdict(b) for b in self.level_distribution],
            "topPerformers": [p.to_dict() for p in self.top_performers],
            "averageLevel": self.average_level,
            "totalVoiceTime": self.total_voice_time,
            "recentActivity": self.recent_activity,
        }


__all__ = [
    "MemberProfile",
    "GuildProfile",
    "LeaderboardEntry",
    "UserStats",
    "ServerInfo",
    "ServerStats",
    "LevelBucket",
    "DetailedStatistics",
]
