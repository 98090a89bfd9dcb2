"""
LevelBoard
==========

Read-only web dashboard for a Discord leveling bot.
"""

__version__ = "1.0.0"
