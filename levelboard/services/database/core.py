"""
LevelBoard - Database Core
==========================

Read-only connection to the leveling bot's SQLite file.

The bot process owns the file and writes to it; the dashboard opens it with
``mode=ro`` so nothing here can modify it. The connection is opened lazily
and reopened after errors, so the dashboard can start before the bot has
created the database.
"""

import sqlite3
import threading
from pathlib import Path
from typing import Optional, List, Tuple

from levelboard.core.logger import logger


DATABASE_TIMEOUT: float = 30.0


class ReadOnlyDatabase:
    """
    Thread-safe read-only SQLite access.

    Queries run via ``asyncio.to_thread`` from the API, so every access goes
    through a threading lock around one shared connection.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    # =========================================================================
    # Connection Handling
    # =========================================================================

    def _connect(self) -> sqlite3.Connection:
        """Open the database read-only."""
        uri = f"file:{self.db_path.resolve().as_posix()}?mode=ro"
        conn = sqlite3.connect(
            uri,
            uri=True,
            check_same_thread=False,
            timeout=DATABASE_TIMEOUT,
        )
        conn.row_factory = sqlite3.Row
        logger.info("Database Connected", [
            ("Path", str(self.db_path)),
            ("Mode", "Read-only"),
        ])
        return conn

    def _ensure_connection(self) -> sqlite3.Connection:
        """Return a live connection, reconnecting if needed."""
        if self._conn is None:
            self._conn = self._connect()
        return self._conn

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute a query and fetch all rows."""
        with self._lock:
            conn = self._ensure_connection()
            try:
                return conn.execute(query, params).fetchall()
            except sqlite3.Error:
                self._drop_connection()
                raise

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        """Execute a query and fetch one row."""
        with self._lock:
            conn = self._ensure_connection()
            try:
                return conn.execute(query, params).fetchone()
            except sqlite3.Error:
                self._drop_connection()
                raise

    def _drop_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                pass
            self._conn = None

    def close(self) -> None:
        """Close the connection."""
        with self._lock:
            if self._conn is not None:
                self._drop_connection()
                logger.info("Database Connection Closed")

    # =========================================================================
    # Health Check
    # =========================================================================

    def health_check(self) -> dict:
        """
        Check that the file exists and answers a trivial query.

        Returns:
            Dict with health status and diagnostics
        """
        result = {
            "healthy": False,
            "path": str(self.db_path),
            "exists": self.db_path.exists(),
            "db_size_mb": 0.0,
            "error": None,
        }

        if not result["exists"]:
            result["error"] = "Database file not found"
            return result

        try:
            self.fetchone("SELECT 1")
            result["db_size_mb"] = round(self.db_path.stat().st_size / (1024 * 1024), 2)
            result["healthy"] = True
        except (sqlite3.Error, OSError) as e:
            result["error"] = str(e)

        return result


__all__ = ["ReadOnlyDatabase", "DATABASE_TIMEOUT"]
