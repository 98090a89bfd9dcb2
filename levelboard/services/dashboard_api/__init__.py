"""
LevelBoard - Dashboard API Package
==================================

HTTP API server for the leveling dashboard.
"""

from levelboard.services.dashboard_api.api import DashboardAPI

__all__ = ["DashboardAPI"]
