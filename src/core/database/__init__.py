"""
AntiSpam - Database Module
==========================

SQLite persistence for the message cache and spam incidents.
"""

from src.core.database.manager import DatabaseManager, DEFAULT_DB_PATH
from src.core.database.base import _safe_json_loads
from src.core.database.models import CacheKeyRecord, IncidentRecord

__all__ = [
    # Main interface
    "DatabaseManager",
    "DEFAULT_DB_PATH",

    # Helpers
    "_safe_json_loads",

    # Type definitions
    "CacheKeyRecord",
    "IncidentRecord",
]
