"""
AntiSpam - Database Base Module
===============================

Core database connection and execution methods.

DESIGN:
    One sqlite file is shared by every process instance. In-process calls
    are serialized by a lock; cross-process atomicity comes from
    BEGIN IMMEDIATE transactions, which take the file's write lock before
    the first read so read-then-write sequences cannot interleave.
"""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, List, Optional, Tuple

from src.core.constants import DB_CONNECTION_TIMEOUT, SQLITE_BUSY_TIMEOUT
from src.core.logger import logger


# =============================================================================
# Helper Functions
# =============================================================================

def _safe_json_loads(value: Optional[str], default: Any = None) -> Any:
    """Safely parse JSON, returning default on error."""
    if not value:
        return default if default is not None else []
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Corrupted JSON in database: {value[:50] if len(value) > 50 else value}")
        return default if default is not None else []


# =============================================================================
# Base Database Class
# =============================================================================

class DatabaseBase:
    """
    Base database manager with connection and execution methods.

    DESIGN: Provides thread-safe database operations.
    Uses WAL mode for better concurrency.
    """

    def _init_base(self, db_path: Path) -> None:
        """Initialize base database components."""
        self.db_path = Path(db_path)
        self._db_lock: threading.RLock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connect()

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _connect(self) -> None:
        """
        Establish database connection with WAL mode.

        isolation_level=None puts the connection in autocommit mode; multi
        statement work goes through transaction(), which issues its own
        BEGIN IMMEDIATE / COMMIT.
        """
        try:
            self._conn = sqlite3.connect(
                str(self.db_path),
                check_same_thread=False,
                timeout=DB_CONNECTION_TIMEOUT,
                isolation_level=None,
            )
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._conn.execute("PRAGMA cache_size=-64000")  # 64MB cache
            self._conn.execute("PRAGMA temp_store=MEMORY")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT}")
            self._conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("Database Connection Failed", [
                ("Path", str(self.db_path)),
                ("Error", str(e)),
            ])
            raise

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is valid, reconnect if needed."""
        if self._conn is None:
            self._connect()
        try:
            self._conn.execute("SELECT 1")
        except sqlite3.Error:
            self._connect()
        return self._conn

    def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
        """Execute a single autocommitted statement with thread safety."""
        with self._db_lock:
            conn = self._ensure_connection()
            cursor = conn.cursor()
            cursor.execute(query, params)
            return cursor

    def fetchone(self, query: str, params: Tuple = ()) -> Optional[sqlite3.Row]:
        """Execute query and fetch one result."""
        with self._db_lock:
            return self.execute(query, params).fetchone()

    def fetchall(self, query: str, params: Tuple = ()) -> List[sqlite3.Row]:
        """Execute query and fetch all results."""
        with self._db_lock:
            return self.execute(query, params).fetchall()

    def ping(self) -> bool:
        """Return True when the store answers a trivial query."""
        try:
            self.fetchone("SELECT 1")
        except sqlite3.Error:
            return False
        return True

    def close(self) -> None:
        """Close database connection."""
        with self._db_lock:
            if self._conn:
                self._conn.close()
                self._conn = None
                logger.info("Database Connection Closed")

    # =========================================================================
    # Transaction Support
    # =========================================================================

    class Transaction:
        """Context manager for atomic database transactions."""

        def __init__(self, db: "DatabaseBase"):
            self._db = db
            self._cursor: Optional[sqlite3.Cursor] = None

        def __enter__(self) -> "DatabaseBase.Transaction":
            self._db._db_lock.acquire()
            try:
                conn = self._db._ensure_connection()
                conn.execute("BEGIN IMMEDIATE")
                self._cursor = conn.cursor()
            except BaseException:
                self._db._db_lock.release()
                raise
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            conn = self._db._conn
            try:
                if conn is not None:
                    if exc_type is None:
                        try:
                            conn.execute("COMMIT")
                        except sqlite3.Error as e:
                            # A failed COMMIT can leave the transaction open
                            if conn.in_transaction:
                                conn.execute("ROLLBACK")
                            logger.warning("Database Commit Failed, Rolled Back", [
                                ("Error", str(e)[:100]),
                            ])
                            raise
                    else:
                        conn.execute("ROLLBACK")
                        logger.warning("Database Transaction Rolled Back", [
                            ("Error", str(exc_val)[:100] if exc_val else "Unknown"),
                        ])
            finally:
                self._db._db_lock.release()
            return False

        def execute(self, query: str, params: Tuple = ()) -> sqlite3.Cursor:
            """Execute a query within this transaction."""
            self._cursor.execute(query, params)
            return self._cursor

        def fetchone(self) -> Optional[sqlite3.Row]:
            """Fetch one result from the last query."""
            return self._cursor.fetchone() if self._cursor else None

        def fetchall(self) -> List[sqlite3.Row]:
            """Fetch all results from the last query."""
            return self._cursor.fetchall() if self._cursor else []

        @property
        def lastrowid(self) -> int:
            """Get the last inserted row ID."""
            return self._cursor.lastrowid if self._cursor else 0

        @property
        def rowcount(self) -> int:
            """Rows changed by the last statement."""
            return self._cursor.rowcount if self._cursor else 0

    def transaction(self) -> "DatabaseBase.Transaction":
        """Create a new transaction context manager."""
        return self.Transaction(self)
