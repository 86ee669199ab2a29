"""
AntiSpam - Async Utilities
==========================

Utilities for handling async operations with proper error logging.
Keeps one failed platform action from silently hiding, or from
cancelling, the others started alongside it.

Usage:
    from src.utils.async_utils import gather_with_logging

    await gather_with_logging(
        ("Delete Messages", executor.delete_messages(guild_id, refs)),
        ("Mute User", executor.mute(guild_id, user_id, duration)),
        context="Spam Handling",
    )
"""

import asyncio
from typing import Any, Coroutine, List, Optional, Tuple

from src.core.logger import logger


async def gather_with_logging(
    *operations: Tuple[str, Coroutine[Any, Any, Any]],
    context: Optional[str] = None,
) -> List[Any]:
    """
    Run multiple async operations concurrently with error logging.

    Unlike asyncio.gather with return_exceptions=True, this function
    logs any exceptions that occur so failures aren't silent.

    Args:
        *operations: Tuples of (operation_name, coroutine).
        context: Optional context string for error logs (e.g., "Spam Handling").

    Returns:
        List of results (including exceptions as values, not raised).
    """
    names = [name for name, _ in operations]
    coros = [coro for _, coro in operations]

    results = await asyncio.gather(*coros, return_exceptions=True)

    for i, result in enumerate(results):
        if isinstance(result, Exception):
            error_details = [
                ("Operation", names[i]),
                ("Error Type", type(result).__name__),
                ("Error", str(result)[:100]),
            ]
            if context:
                error_details.insert(0, ("Context", context))

            logger.warning("Async Operation Failed", error_details)

    return results


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
) -> Any:
    """
    Run a single async operation, logging and returning default on failure.

    Args:
        name: Name of the operation for logging.
        coro: The coroutine to run.
        default: Value to return if operation fails.
    """
    try:
        return await coro
    except Exception as e:
        logger.warning("Async Operation Failed", [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ])
        return default


# =============================================================================
# Safe Background Tasks
# =============================================================================

def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Create a background task with automatic error logging.

    Unlike raw asyncio.create_task(), this catches and logs any exceptions
    instead of letting them silently disappear.

    Example:
        create_safe_task(cache.run_sweeper(interval), "Cache Sweeper")
    """
    async def wrapped():
        try:
            await coro
        except asyncio.CancelledError:
            # Cancelled during shutdown
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:200]),
            ])

    return asyncio.create_task(wrapped(), name=name)


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "gather_with_logging",
    "safe_async_operation",
    "create_safe_task",
]
