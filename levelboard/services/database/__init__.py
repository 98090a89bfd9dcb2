"""
LevelBoard - Database Package
=============================

Read-only access to the leveling bot's SQLite database.
"""

from levelboard.services.database.core import ReadOnlyDatabase
from levelboard.services.database.queries import LevelingDatabase, total_pages

__all__ = ["ReadOnlyDatabase", "LevelingDatabase", "total_pages"]
