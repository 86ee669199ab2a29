#!/usr/bin/env python3
"""
AntiSpam - Maintenance Process Entry Point
==========================================

Runs the pieces of the anti-spam core that need no chat connection:
the expired-cache sweeper and the health endpoint. Bots that embed the
detection pipeline wire it with src.bootstrap.build_components().

Several instances may run against the same database file; every shared
mutation is atomic in the store itself.
"""

import asyncio
import signal
import sys

from dotenv import load_dotenv

from src.core.config import ConfigValidationError, validate_and_log_config
from src.core.database import DatabaseManager
from src.core.health import HealthCheckServer
from src.core.logger import logger
from src.services.antispam import SlidingWindowCache
from src.utils.async_utils import create_safe_task


async def main() -> None:
    """
    Main entry point.

    1. Loads .env and validates configuration
    2. Opens the shared store
    3. Starts the cache sweeper and the health server
    4. Waits for SIGINT/SIGTERM, then shuts down cleanly
    """
    load_dotenv()

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Configuration Invalid", [("Error", str(e))])
        sys.exit(1)

    logger.set_webhook(config.error_webhook_url)

    db = DatabaseManager(config.database_path)
    cache = SlidingWindowCache(db, max_messages=config.cache_max_messages, ttl_seconds=config.cache_key_ttl)
    health = HealthCheckServer(db, port=config.health_port)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows

    await health.start()
    sweeper = create_safe_task(cache.run_sweeper(config.cache_sweep_interval), "Cache Sweeper")

    logger.tree("ANTISPAM STARTED", [
        ("Store", str(config.database_path)),
        ("Sweep Interval", f"{config.cache_sweep_interval}s"),
        ("Health Port", str(config.health_port)),
    ], emoji="🛡️")

    try:
        await stop.wait()
    finally:
        sweeper.cancel()
        await asyncio.gather(sweeper, return_exceptions=True)
        await health.stop()
        db.close()
        logger.info("AntiSpam stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("AntiSpam stopped by user (Ctrl+C)")
