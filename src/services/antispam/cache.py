"""
Anti-Spam Sliding Window Cache
==============================

Per-(guild, user) history of recent message fingerprints.

DESIGN:
    Thin async facade over the sqlite message cache. The atomic
    read-evict-insert lives in one database transaction
    (MessageCacheMixin.add_cached_message); this layer only encodes
    payloads, supplies the clock and maps store failures to
    CacheUnavailable. Each call suspends the calling coroutine while the
    query runs in a worker thread, so other streams keep processing.
"""

import asyncio
import json
import sqlite3
import time
from typing import Callable, List

from src.core.constants import CACHE_KEY_TTL, CACHE_MAX_MESSAGES, LOG_TRUNCATE_LENGTH
from src.core.database import DatabaseManager
from src.core.errors import CacheUnavailable
from src.core.logger import logger

from .models import CachedMessage


def _decode(payloads: List[str]) -> List[CachedMessage]:
    """Decode stored payloads, skipping any that are corrupted."""
    messages: List[CachedMessage] = []
    for payload in payloads:
        try:
            messages.append(CachedMessage.from_json(payload))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Corrupted Cache Entry Skipped", [
                ("Error", str(e)[:100]),
                ("Payload", payload[:LOG_TRUNCATE_LENGTH]),
            ])
    return messages


class SlidingWindowCache:
    """
    Bounded, self-expiring message history shared by all processes.

    Args:
        db: Store holding the cache tables.
        max_messages: Retained-count bound per key, independent of the window.
        ttl_seconds: Idle time after which a key and its entries expire.
        clock: Returns the current unix time in seconds.
    """

    def __init__(
        self,
        db: DatabaseManager,
        max_messages: int = CACHE_MAX_MESSAGES,
        ttl_seconds: int = CACHE_KEY_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self.max_messages = max_messages
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    async def add(
        self,
        guild_id: int,
        user_id: int,
        message: CachedMessage,
        window_seconds: int,
    ) -> List[CachedMessage]:
        """
        Insert ``message`` and return the window as it was before the insert.

        Raises:
            CacheUnavailable: If the backing store failed.
        """
        def _add() -> List[str]:
            return self._db.add_cached_message(
                guild_id, user_id, message.posted_at, message.to_json(),
                window_seconds, self.max_messages, self.ttl_seconds, self._clock(),
            )

        try:
            payloads = await asyncio.to_thread(_add)
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cache add failed: {e}") from e
        return _decode(payloads)

    async def get_window(self, guild_id: int, user_id: int, window_seconds: int) -> List[CachedMessage]:
        """Current in-window entries, oldest first. Read-only."""
        def _get() -> List[str]:
            return self._db.get_cached_messages(
                guild_id, user_id, window_seconds, self.max_messages, self._clock(),
            )

        try:
            payloads = await asyncio.to_thread(_get)
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cache read failed: {e}") from e
        return _decode(payloads)

    async def count(self, guild_id: int, user_id: int, window_seconds: int) -> int:
        """Entries currently inside the window for a key. Read-only."""
        try:
            return await asyncio.to_thread(
                self._db.count_cached_messages, guild_id, user_id, window_seconds, self._clock(),
            )
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cache count failed: {e}") from e

    async def clear(self, guild_id: int, user_id: int) -> None:
        """Administrative reset of one user's history."""
        try:
            removed = await asyncio.to_thread(self._db.clear_cached_messages, guild_id, user_id)
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cache clear failed: {e}") from e

        logger.tree("Message Cache Cleared", [
            ("Guild", str(guild_id)),
            ("User", str(user_id)),
            ("Entries", str(removed)),
        ], emoji="🧹")

    async def sweep_expired(self) -> int:
        """Purge every expired key. Returns the number of keys removed."""
        try:
            removed = await asyncio.to_thread(self._db.purge_expired_cache_keys, self._clock())
        except sqlite3.Error as e:
            raise CacheUnavailable(f"Cache sweep failed: {e}") from e

        if removed:
            logger.debug("Expired Cache Keys Swept", [("Keys", str(removed))])
        return removed

    async def run_sweeper(self, interval: float) -> None:
        """Sweep expired keys forever. Run with create_safe_task()."""
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_expired()
            except CacheUnavailable as e:
                logger.warning("Cache Sweep Failed", [("Error", str(e)[:100])])


__all__ = ["SlidingWindowCache"]
