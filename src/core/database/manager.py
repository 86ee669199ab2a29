"""
AntiSpam - Database Manager
===========================

SQLite store shared by the message cache and the incident lifecycle.

DESIGN:
    Constructed with an explicit path and handed to the components that
    need it (see src/bootstrap.py). There is no process-wide instance, so
    tests open a fresh file per case and several managers may point at
    the same file from different processes.
"""

from pathlib import Path
from typing import Union

from src.core.logger import logger
from src.core.database.base import DatabaseBase
from src.core.database.schema import SchemaMixin
from src.core.database.message_cache import MessageCacheMixin
from src.core.database.incidents import IncidentsMixin


# =============================================================================
# Constants
# =============================================================================

DEFAULT_DB_PATH: Path = Path("data") / "antispam.db"


# =============================================================================
# Database Manager
# =============================================================================

class DatabaseManager(
    SchemaMixin,
    MessageCacheMixin,
    IncidentsMixin,
    DatabaseBase,
):
    """
    Centralized database manager with thread-safe operations.

    DESIGN: Uses WAL mode for concurrent readers across processes.
    All operations are thread-safe via internal locking.
    """

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH) -> None:
        """Open (creating if needed) the database file and its tables."""
        self._init_base(Path(db_path))
        self._init_tables()

        logger.tree("Database Manager Initialized", [
            ("Path", str(self.db_path)),
            ("WAL Mode", "Enabled"),
            ("Cache Size", "64MB"),
        ], emoji="🗄️")

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
