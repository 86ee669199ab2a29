"""
AntiSpam - Message Cache Tests
==============================

Tests for the sliding window cache and its sqlite backing.
"""

import threading

import pytest

from src.core.database import DatabaseManager
from src.core.errors import CacheUnavailable
from src.services.antispam import CachedMessage, SlidingWindowCache

GUILD = 111
USER = 222
WINDOW = 120


class TestAdd:
    """Tests for the atomic add."""

    @pytest.mark.asyncio
    async def test_returns_window_before_insert(self, cache, make_message):
        """The new message is never part of its own window."""
        first = make_message("hello", channel_id=1)
        second = make_message("hello again", channel_id=2)

        assert await cache.add(GUILD, USER, first, WINDOW) == []
        prior = await cache.add(GUILD, USER, second, WINDOW)

        assert prior == [first]

    @pytest.mark.asyncio
    async def test_returns_oldest_first(self, cache, make_message, clock):
        """Prior entries come back in posting order."""
        posted = []
        for i in range(4):
            msg = make_message(f"msg {i}", channel_id=i)
            posted.append(msg)
            await cache.add(GUILD, USER, msg, WINDOW)
            clock.advance(5)

        prior = await cache.add(GUILD, USER, make_message("last"), WINDOW)
        assert prior == posted

    @pytest.mark.asyncio
    async def test_evicts_entries_older_than_window(self, cache, make_message, clock):
        """Entries posted before now - window are dropped."""
        await cache.add(GUILD, USER, make_message("old"), WINDOW)
        clock.advance(WINDOW + 1)

        prior = await cache.add(GUILD, USER, make_message("new"), WINDOW)

        assert prior == []
        assert await cache.count(GUILD, USER, WINDOW) == 1

    @pytest.mark.asyncio
    async def test_entry_exactly_at_cutoff_is_kept(self, cache, make_message, clock):
        """The window boundary is inclusive."""
        old = make_message("edge")
        await cache.add(GUILD, USER, old, WINDOW)
        clock.advance(WINDOW)

        prior = await cache.add(GUILD, USER, make_message("new"), WINDOW)
        assert prior == [old]

    @pytest.mark.asyncio
    async def test_respects_retained_count_bound(self, cache, make_message, clock):
        """Never more than max_messages entries, oldest evicted first."""
        for i in range(30):
            await cache.add(GUILD, USER, make_message(f"m{i}", channel_id=i), WINDOW)
            clock.advance(1)

        window = await cache.get_window(GUILD, USER, WINDOW)
        assert len(window) == cache.max_messages
        assert window[0].content == "m10"
        assert window[-1].content == "m29"

        prior = await cache.add(GUILD, USER, make_message("next"), WINDOW)
        assert len(prior) <= cache.max_messages

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_kept(self, cache, make_message):
        """Redelivered messages show up twice, in the same channel."""
        msg = make_message("dup", channel_id=5, message_id=77)
        await cache.add(GUILD, USER, msg, WINDOW)
        prior = await cache.add(GUILD, USER, msg, WINDOW)

        assert prior == [msg]
        assert await cache.count(GUILD, USER, WINDOW) == 2

    @pytest.mark.asyncio
    async def test_keys_are_isolated(self, cache, make_message):
        """Different users and guilds never see each other's messages."""
        await cache.add(GUILD, USER, make_message("mine"), WINDOW)

        assert await cache.add(GUILD, USER + 1, make_message("other user"), WINDOW) == []
        assert await cache.add(GUILD + 1, USER, make_message("other guild"), WINDOW) == []

    @pytest.mark.asyncio
    async def test_attachment_count_round_trips(self, cache, make_message):
        """Attachment counts survive storage."""
        msg = make_message("", attachment_count=3)
        await cache.add(GUILD, USER, msg, WINDOW)

        window = await cache.get_window(GUILD, USER, WINDOW)
        assert window[0].attachment_count == 3
        assert window[0].has_attachments


class TestReadOnlyOperations:
    """Tests for get_window, count and clear."""

    @pytest.mark.asyncio
    async def test_get_window_does_not_mutate(self, cache, make_message, clock):
        """Reading applies the time cutoff without deleting anything."""
        await cache.add(GUILD, USER, make_message("a"), WINDOW)
        clock.advance(WINDOW + 10)

        assert await cache.get_window(GUILD, USER, WINDOW) == []
        # Still stored until the next add or sweep
        assert await cache.get_window(GUILD, USER, WINDOW * 2) != []

    @pytest.mark.asyncio
    async def test_count_uses_window(self, cache, make_message, clock):
        """Count only includes in-window entries."""
        await cache.add(GUILD, USER, make_message("a"), 600)
        clock.advance(100)
        await cache.add(GUILD, USER, make_message("b"), 600)

        assert await cache.count(GUILD, USER, 600) == 2
        assert await cache.count(GUILD, USER, 50) == 1

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, cache, make_message):
        """Clear empties the key."""
        await cache.add(GUILD, USER, make_message("a"), WINDOW)
        await cache.add(GUILD, USER, make_message("b"), WINDOW)

        await cache.clear(GUILD, USER)

        assert await cache.get_window(GUILD, USER, WINDOW) == []
        assert await cache.count(GUILD, USER, WINDOW) == 0


class TestExpiry:
    """Tests for idle key expiry."""

    @pytest.mark.asyncio
    async def test_expired_key_reads_empty(self, test_db, clock, make_message):
        """Once the TTL lapses the key behaves as empty."""
        cache = SlidingWindowCache(test_db, max_messages=20, ttl_seconds=600, clock=clock)
        await cache.add(GUILD, USER, make_message("a"), 600)
        clock.advance(601)

        assert await cache.get_window(GUILD, USER, 86400) == []
        assert await cache.add(GUILD, USER, make_message("b"), 86400) == []

    @pytest.mark.asyncio
    async def test_add_refreshes_ttl(self, test_db, clock, make_message):
        """Every add pushes the expiry forward."""
        cache = SlidingWindowCache(test_db, max_messages=20, ttl_seconds=600, clock=clock)
        await cache.add(GUILD, USER, make_message("a"), 600)
        clock.advance(400)
        await cache.add(GUILD, USER, make_message("b"), 600)
        clock.advance(400)

        assert len(await cache.get_window(GUILD, USER, 86400)) == 2

    @pytest.mark.asyncio
    async def test_sweep_removes_expired_keys_only(self, test_db, clock, make_message):
        """Sweeping deletes lapsed keys and leaves live ones."""
        cache = SlidingWindowCache(test_db, max_messages=20, ttl_seconds=600, clock=clock)
        await cache.add(GUILD, USER, make_message("stale"), 600)
        clock.advance(500)
        await cache.add(GUILD, USER + 1, make_message("live"), 600)
        clock.advance(200)

        assert await cache.sweep_expired() == 1
        assert test_db.count_cache_keys(clock()) == 1
        assert await cache.count(GUILD, USER + 1, 600) == 1


class TestConcurrency:
    """Concurrent adds to one key never lose an insertion."""

    def test_threads_sharing_one_manager(self, test_db, clock):
        """N threads each add one distinct message; all of them survive."""
        errors = []

        def worker(i):
            try:
                msg = CachedMessage(f"msg {i}", i, 10_000 + i, int(clock()), 0)
                test_db.add_cached_message(GUILD, USER, msg.posted_at, msg.to_json(), WINDOW, 50, 3600, clock())
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        payloads = test_db.get_cached_messages(GUILD, USER, WINDOW, 50, clock())
        ids = {CachedMessage.from_json(p).message_id for p in payloads}
        assert ids == {10_000 + i for i in range(16)}

    def test_separate_connections_same_file(self, temp_db_path, test_db, clock):
        """Two managers on one file behave like two processes."""
        other = DatabaseManager(temp_db_path)
        errors = []

        def worker(db, base):
            try:
                for i in range(10):
                    msg = CachedMessage("x", 1, base + i, int(clock()), 0)
                    db.add_cached_message(GUILD, USER, msg.posted_at, msg.to_json(), WINDOW, 50, 3600, clock())
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        try:
            threads = [
                threading.Thread(target=worker, args=(test_db, 1_000)),
                threading.Thread(target=worker, args=(other, 2_000)),
            ]
            for t in threads:
                t.start()
            for t in threads:
                t.join()
        finally:
            other.close()

        assert errors == []
        assert test_db.count_cached_messages(GUILD, USER, WINDOW, clock()) == 20

    def test_bound_holds_under_concurrency(self, test_db, clock):
        """Concurrent adds past the bound leave exactly the bound."""
        def worker(i):
            msg = CachedMessage("x", 1, i, int(clock()), 0)
            test_db.add_cached_message(GUILD, USER, msg.posted_at, msg.to_json(), WINDOW, 20, 3600, clock())

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(40)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert test_db.count_cached_messages(GUILD, USER, WINDOW, clock()) == 20


class TestFailures:
    """Store failures surface as CacheUnavailable."""

    @pytest.mark.asyncio
    async def test_sqlite_error_maps_to_cache_unavailable(self, test_db, cache, make_message):
        """A dropped table is reported, not swallowed."""
        test_db.execute("DROP TABLE message_cache")

        with pytest.raises(CacheUnavailable):
            await cache.add(GUILD, USER, make_message("a"), WINDOW)

    @pytest.mark.asyncio
    async def test_corrupted_payload_is_skipped(self, test_db, cache, clock, make_message):
        """Undecodable rows are ignored rather than failing the read."""
        test_db.execute(
            "INSERT INTO message_cache (guild_id, user_id, posted_at, payload) VALUES (?, ?, ?, ?)",
            (GUILD, USER, int(clock()), "{not json"),
        )
        good = make_message("fine")
        await cache.add(GUILD, USER, good, WINDOW)

        assert await cache.get_window(GUILD, USER, WINDOW) == [good]
