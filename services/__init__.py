# ============================================================================
# SERVICES MODULE
# ============================================================================
# STATUS: Core - Background services
# PURPOSE: Long-running loops started by the application lifespan
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Services Module

Usage:
    from services import DatabaseHealthMonitor

    monitor = DatabaseHealthMonitor(db)
    monitor.start()
"""

from .database_monitor import DatabaseHealthMonitor, MonitorState

__all__ = [
    "DatabaseHealthMonitor",
    "MonitorState",
]
