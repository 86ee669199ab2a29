"""
Database Schema Module
======================

Table definitions for the message cache and the incident store.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


class SchemaMixin:
    """Mixin for database schema initialization."""

    def _init_tables(self: "DatabaseManager") -> None:
        """
        Initialize all database tables.

        DESIGN: Tables are created if not exist, allowing safe restarts
        and several processes opening the same file.
        """
        with self.transaction() as tx:
            # -----------------------------------------------------------------
            # Message Cache
            # DESIGN: One row per cached message, ordered by (posted_at, id)
            # -----------------------------------------------------------------
            tx.execute("""
                CREATE TABLE IF NOT EXISTS message_cache (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    guild_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    posted_at INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)
            tx.execute("""
                CREATE INDEX IF NOT EXISTS idx_message_cache_key
                ON message_cache(guild_id, user_id, posted_at)
            """)

            # -----------------------------------------------------------------
            # Message Cache Keys
            # DESIGN: Idle expiry per (guild, user); refreshed on every add
            # -----------------------------------------------------------------
            tx.execute("""
                CREATE TABLE IF NOT EXISTS message_cache_keys (
                    guild_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    expires_at REAL NOT NULL,
                    PRIMARY KEY (guild_id, user_id)
                )
            """)
            tx.execute("""
                CREATE INDEX IF NOT EXISTS idx_message_cache_keys_expiry
                ON message_cache_keys(expires_at)
            """)

            # -----------------------------------------------------------------
            # Spam Incidents
            # DESIGN: status moves out of 'pending' exactly once
            # -----------------------------------------------------------------
            tx.execute("""
                CREATE TABLE IF NOT EXISTS spam_incidents (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    guild_id INTEGER NOT NULL,
                    user_id INTEGER NOT NULL,
                    username TEXT NOT NULL,
                    content TEXT NOT NULL,
                    channel_ids TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    alert_channel_id INTEGER,
                    alert_message_id INTEGER,
                    handled_by_user_id INTEGER,
                    handled_by_username TEXT,
                    moderator_note TEXT,
                    created_at REAL NOT NULL,
                    handled_at REAL
                )
            """)
            tx.execute("""
                CREATE INDEX IF NOT EXISTS idx_spam_incidents_alert
                ON spam_incidents(alert_message_id)
            """)
            tx.execute("""
                CREATE INDEX IF NOT EXISTS idx_spam_incidents_status
                ON spam_incidents(guild_id, status)
            """)
