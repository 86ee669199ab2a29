"""
AntiSpam - Database Message Cache Module
========================================

Bounded per-(guild, user) message history backing the sliding window.

DESIGN:
    Every mutation runs inside one BEGIN IMMEDIATE transaction, so the
    read of prior entries, the insert, both evictions and the expiry
    refresh are a single atomic step even across processes sharing the
    file. Payloads are opaque strings; the caller owns their format.
"""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from src.core.database.manager import DatabaseManager


# Prior entries in a key, newest `max` inside the window, returned oldest first
_WINDOW_QUERY = """
    SELECT payload FROM (
        SELECT id, posted_at, payload FROM message_cache
        WHERE guild_id = ? AND user_id = ? AND posted_at >= ?
        ORDER BY posted_at DESC, id DESC
        LIMIT ?
    ) ORDER BY posted_at ASC, id ASC
"""


class MessageCacheMixin:
    """Mixin for message cache operations."""

    def _expire_key_if_stale(self: "DatabaseManager", tx, guild_id: int, user_id: int, now: float) -> None:
        """Drop a key's entries when its idle expiry has passed."""
        tx.execute(
            "SELECT expires_at FROM message_cache_keys WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        )
        row = tx.fetchone()
        if row is not None and row["expires_at"] <= now:
            tx.execute(
                "DELETE FROM message_cache WHERE guild_id = ? AND user_id = ?",
                (guild_id, user_id),
            )
            tx.execute(
                "DELETE FROM message_cache_keys WHERE guild_id = ? AND user_id = ?",
                (guild_id, user_id),
            )

    def add_cached_message(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        posted_at: int,
        payload: str,
        window_seconds: int,
        max_messages: int,
        ttl_seconds: int,
        now: float,
    ) -> List[str]:
        """
        Append a message and return the entries that preceded it.

        Returns prior payloads with posted_at >= now - window_seconds, at
        most max_messages, oldest first. The new entry is not included.
        Afterwards the key holds no entry older than the window, no more
        than max_messages entries, and expires ttl_seconds from now.
        """
        cutoff = int(now) - window_seconds

        with self.transaction() as tx:
            self._expire_key_if_stale(tx, guild_id, user_id, now)

            tx.execute(_WINDOW_QUERY, (guild_id, user_id, cutoff, max_messages))
            prior = [row["payload"] for row in tx.fetchall()]

            tx.execute(
                "INSERT INTO message_cache (guild_id, user_id, posted_at, payload) VALUES (?, ?, ?, ?)",
                (guild_id, user_id, posted_at, payload),
            )

            # Evict by age
            tx.execute(
                "DELETE FROM message_cache WHERE guild_id = ? AND user_id = ? AND posted_at < ?",
                (guild_id, user_id, cutoff),
            )

            # Evict by count, keeping the newest max_messages
            tx.execute(
                """DELETE FROM message_cache WHERE id IN (
                       SELECT id FROM message_cache
                       WHERE guild_id = ? AND user_id = ?
                       ORDER BY posted_at DESC, id DESC
                       LIMIT -1 OFFSET ?
                   )""",
                (guild_id, user_id, max_messages),
            )

            tx.execute(
                """INSERT INTO message_cache_keys (guild_id, user_id, expires_at) VALUES (?, ?, ?)
                   ON CONFLICT(guild_id, user_id) DO UPDATE SET expires_at = excluded.expires_at""",
                (guild_id, user_id, now + ttl_seconds),
            )

        return prior

    def get_cached_messages(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        window_seconds: int,
        max_messages: int,
        now: float,
    ) -> List[str]:
        """Read a key's in-window payloads without modifying anything."""
        row = self.fetchone(
            "SELECT expires_at FROM message_cache_keys WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        )
        if row is not None and row["expires_at"] <= now:
            return []

        rows = self.fetchall(_WINDOW_QUERY, (guild_id, user_id, int(now) - window_seconds, max_messages))
        return [r["payload"] for r in rows]

    def count_cached_messages(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        window_seconds: int,
        now: float,
    ) -> int:
        """Number of in-window entries stored under a live key."""
        row = self.fetchone(
            "SELECT expires_at FROM message_cache_keys WHERE guild_id = ? AND user_id = ?",
            (guild_id, user_id),
        )
        if row is not None and row["expires_at"] <= now:
            return 0

        row = self.fetchone(
            "SELECT COUNT(*) AS n FROM message_cache WHERE guild_id = ? AND user_id = ? AND posted_at >= ?",
            (guild_id, user_id, int(now) - window_seconds),
        )
        return row["n"] if row else 0

    def clear_cached_messages(self: "DatabaseManager", guild_id: int, user_id: int) -> int:
        """Remove a key and all its entries. Returns entries removed."""
        with self.transaction() as tx:
            tx.execute(
                "DELETE FROM message_cache WHERE guild_id = ? AND user_id = ?",
                (guild_id, user_id),
            )
            removed = tx.rowcount
            tx.execute(
                "DELETE FROM message_cache_keys WHERE guild_id = ? AND user_id = ?",
                (guild_id, user_id),
            )
        return removed

    def purge_expired_cache_keys(self: "DatabaseManager", now: float) -> int:
        """Delete every expired key with its entries. Returns keys removed."""
        with self.transaction() as tx:
            tx.execute(
                """DELETE FROM message_cache WHERE EXISTS (
                       SELECT 1 FROM message_cache_keys k
                       WHERE k.guild_id = message_cache.guild_id
                         AND k.user_id = message_cache.user_id
                         AND k.expires_at <= ?
                   )""",
                (now,),
            )
            tx.execute("DELETE FROM message_cache_keys WHERE expires_at <= ?", (now,))
            removed = tx.rowcount
        return removed

    def count_cache_keys(self: "DatabaseManager", now: float) -> int:
        """Live cache keys, for the health endpoint."""
        row = self.fetchone(
            "SELECT COUNT(*) AS n FROM message_cache_keys WHERE expires_at > ?",
            (now,),
        )
        return row["n"] if row else 0
