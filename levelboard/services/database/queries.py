"""
LevelBoard - Leveling Queries
=============================

Aggregation queries over the bot's ``users`` table:

    users(user_id, guild_id, xp, level, voice_total_time)

Every query is scoped to a guild. Failures are logged and turned into the
empty result so a page can still render.
"""

import math
import sqlite3
from typing import Optional

from levelboard.core.constants import (
    LEADERBOARD_DEFAULT_LIMIT,
    SEARCH_RESULT_LIMIT,
    TOP_PERFORMERS_PAGE_SIZE,
    USERS_PAGE_DEFAULT_LIMIT,
)
from levelboard.core.logger import logger
from levelboard.models import (
    DetailedStatistics,
    LeaderboardEntry,
    LevelBucket,
    ServerInfo,
    ServerStats,
    UserStats,
)
from levelboard.services.database.core import ReadOnlyDatabase
from levelboard.utils.formatting import server_fallback_name


RANKED_USERS_SELECT = """
    SELECT
        ROW_NUMBER() OVER (ORDER BY xp DESC) AS rank,
        user_id,
        xp,
        level,
        voice_total_time
    FROM users
    WHERE guild_id = ?
"""


def _entry_from_row(row: sqlite3.Row, with_voice: bool = False) -> LeaderboardEntry:
    user_id = str(row["user_id"])
    return LeaderboardEntry(
        rank=row["rank"],
        user_id=user_id,
        username=user_id,
        exp=row["xp"] or 0,
        level=row["level"] or 0,
        voice_time=(row["voice_total_time"] or 0) if with_voice else None,
    )


class LevelingDatabase(ReadOnlyDatabase):
    """Read-only queries backing the dashboard pages."""

    def get_leaderboard(
        self,
        guild_id: str,
        limit: int = LEADERBOARD_DEFAULT_LIMIT,
    ) -> list[LeaderboardEntry]:
        """Top users of a guild by XP."""
        try:
            rows = self.fetchall(
                RANKED_USERS_SELECT + " ORDER BY xp DESC LIMIT ?",
                (guild_id, limit),
            )
        except sqlite3.Error as e:
            logger.error_tree("Failed To Fetch Leaderboard", e, [("Guild ID", guild_id)])
            return []
        return [_entry_from_row(row) for row in rows]

    def get_user_stats(self, user_id: str, guild_id: str) -> Optional[UserStats]:
        """Stats for one user in one guild, or None when absent."""
        try:
            row = self.fetchone(
                """SELECT user_id, guild_id, xp, level, voice_total_time
                   FROM users
                   WHERE user_id = ? AND guild_id = ?""",
                (user_id, guild_id),
            )
        except sqlite3.Error as e:
            logger.error_tree("Failed To Fetch User Stats", e, [
                ("User ID", user_id),
                ("Guild ID", guild_id),
            ])
            return None

        if row is None:
            return None
        return UserStats(
            user_id=str(row["user_id"]),
            server_id=str(row["guild_id"]),
            exp=row["xp"] or 0,
            level=row["level"] or 0,
            voice_time=row["voice_total_time"] or 0,
        )

    def get_servers(self) -> list[ServerInfo]:
        """Every guild with at least one user row."""
        try:
            rows = self.fetchall("SELECT DISTINCT guild_id FROM users ORDER BY guild_id")
        except sqlite3.Error as e:
            logger.error_tree("Failed To Fetch Servers", e)
            return []

        servers = []
        for row in rows:
            guild_id = str(row["guild_id"])
            servers.append(ServerInfo(id=guild_id, name=server_fallback_name(guild_id)))
        return servers

    def get_server_stats(self, guild_id: str) -> ServerStats:
        """User count and XP total for a guild."""
        try:
            row = self.fetchone(
                """SELECT COUNT(DISTINCT user_id) AS total_users, SUM(xp) AS total_exp
                   FROM users
                   WHERE guild_id = ?""",
                (guild_id,),
            )
        except sqlite3.Error as e:
            logger.error_tree("Failed To Fetch Server Stats", e, [("Guild ID", guild_id)])
            return ServerStats()

        if row is None:
            return ServerStats()
        return ServerStats(
            total_users=row["total_users"] or 0,
            total_exp=row["total_exp"] or 0,
        )

    def search_users(self, guild_id: str, term: str) -> list[LeaderboardEntry]:
        """Users whose ID contains ``term``, ranked within the matches."""
        try:
            rows = self.fetchall(
                RANKED_USERS_SELECT + """ AND CAST(user_id AS TEXT) LIKE ?
                   ORDER BY xp DESC
                   LIMIT ?""",
                (guild_id, f"%{term}%", SEARCH_RESULT_LIMIT),
            )
        except sqlite3.Error as e:
            logger.error_tree("Failed To Search Users", e, [
                ("Guild ID", guild_id),
                ("Term", term),
            ])
            return []
        return [_entry_from_row(row) for row in rows]

    def count_users(self, guild_id: str) -> int:
        try:
            row = self.fetchone("SELECT COUNT(*) AS total FROM users WHERE guild_id = ?", (guild_id,))
        except sqlite3.Error as e:
            logger.error_tree("Failed To Count Users", e, [("Guild ID", guild_id)])
            return 0
        return row["total"] if row else 0

    def get_all_users(
        self,
        guild_id: str,
        page: int = 1,
        limit: int = USERS_PAGE_DEFAULT_LIMIT,
    ) -> tuple[list[LeaderboardEntry], int]:
        """
        One page of a guild's users ordered by XP.

        Returns:
            (entries on the page, total users in the guild)
        """
        total = self.count_users(guild_id)
        offset = (max(page, 1) - 1) * limit

        try:
            rows = self.fetchall(
                RANKED_USERS_SELECT + " ORDER BY xp DESC LIMIT ? OFFSET ?",
                (guild_id, limit, offset),
            )
        except (sqlite3.Error, OverflowError) as e:
            logger.error_tree("Failed To Fetch Users Page", e, [
                ("Guild ID", guild_id),
                ("Page", str(page)),
            ])
            return [], 0

        return [_entry_from_row(row, with_voice=True) for row in rows], total

    def get_detailed_statistics(
        self,
        guild_id: str,
        page: int = 1,
        page_size: int = TOP_PERFORMERS_PAGE_SIZE,
    ) -> DetailedStatistics:
        """Level distribution, paged top performers, averages and voice total."""
        try:
            distribution = self.fetchall(
                """SELECT level, COUNT(*) AS count
                   FROM users
                   WHERE guild_id = ?
                   GROUP BY level
                   ORDER BY level ASC""",
                (guild_id,),
            )
            totals = self.fetchone(
                """SELECT COUNT(*) AS total_users,
                          AVG(level) AS avg_level,
                          SUM(voice_total_time) AS total_voice_time
                   FROM users
                   WHERE guild_id = ?""",
                (guild_id,),
            )
            performers = self.fetchall(
                RANKED_USERS_SELECT + " ORDER BY xp DESC LIMIT ? OFFSET ?",
                (guild_id, page_size, (max(page, 1) - 1) * page_size),
            )
        except (sqlite3.Error, OverflowError) as e:
            logger.error_tree("Failed To Fetch Detailed Statistics", e, [("Guild ID", guild_id)])
            return DetailedStatistics()

        return DetailedStatistics(
            level_distribution=[LevelBucket(level=r["level"], count=r["count"]) for r in distribution],
            top_performers=[_entry_from_row(row) for row in performers],
            top_performers_total=totals["total_users"] or 0,
            average_level=round(totals["avg_level"] or 0.0, 2),
            total_voice_time=totals["total_voice_time"] or 0,
        )


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0


__all__ = ["LevelingDatabase", "total_pages"]
