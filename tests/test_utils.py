"""
AntiSpam - Utility Tests
========================

Tests for duration formatting and the async helpers.
"""

import asyncio
from datetime import timedelta

import pytest

from src.utils import create_safe_task, format_duration, gather_with_logging, safe_async_operation


class TestFormatDuration:
    """Tests for format_duration()."""

    @pytest.mark.parametrize("delta,expected", [
        (timedelta(minutes=45), "45m"),
        (timedelta(minutes=125), "2h 5m"),
        (timedelta(hours=2), "2h 0m"),
        (timedelta(minutes=1500), "1d 1h"),
        (timedelta(seconds=59), "0m"),
        (timedelta(0), "0m"),
        (timedelta(minutes=-5), "0m"),
    ])
    def test_format(self, delta, expected):
        assert format_duration(delta) == expected


async def _ok(value):
    return value


async def _fail():
    raise RuntimeError("boom")


class TestAsyncHelpers:
    """Tests for the logging async wrappers."""

    @pytest.mark.asyncio
    async def test_gather_keeps_going_after_failure(self):
        """One failure doesn't cancel or hide the others."""
        results = await gather_with_logging(("a", _ok(1)), ("b", _fail()), ("c", _ok(3)), context="test")
        assert results[0] == 1
        assert isinstance(results[1], RuntimeError)
        assert results[2] == 3

    @pytest.mark.asyncio
    async def test_safe_operation_returns_default(self):
        assert await safe_async_operation("ok", _ok(5)) == 5
        assert await safe_async_operation("fail", _fail(), default="fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_safe_task_swallows_failure(self):
        """Background failures are logged, not raised into the loop."""
        task = create_safe_task(_fail(), "failing")
        await task
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_safe_task_cancel(self):
        task = create_safe_task(asyncio.sleep(10), "sleeper")
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        assert task.done()
