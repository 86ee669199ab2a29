"""
AntiSpam - Health Check Server
==============================

HTTP health check endpoint for external monitoring.

DESIGN:
    Provides a lightweight HTTP server that uptime checkers or
    orchestration systems can ping to verify the process is running and
    its store is reachable.

    The /health endpoint returns JSON with store status, the number of
    incidents awaiting a moderator and the number of live cache keys,
    without exposing message content.
"""

import asyncio
import sqlite3
import time
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web

from src.core.database import DatabaseManager
from src.core.logger import logger


# =============================================================================
# Health Check Server
# =============================================================================

class HealthCheckServer:
    """
    Simple HTTP health check server for monitoring.

    DESIGN:
        Uses aiohttp for async HTTP serving within the process event loop.
        Binds to 0.0.0.0 to accept external connections.

    Attributes:
        db: Store the cache and incidents live in.
        port: Port number for the HTTP server.
        app: aiohttp Application instance.
        runner: aiohttp AppRunner for lifecycle management.
    """

    def __init__(self, db: DatabaseManager, port: int = 8080) -> None:
        self.db = db
        self.port = port
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None

        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/", self.health_handler)

    # =========================================================================
    # Request Handlers
    # =========================================================================

    def _collect(self) -> dict:
        now = time.time()
        return {
            "pending_incidents": self.db.count_incidents(status="pending"),
            "cached_keys": self.db.count_cache_keys(now),
        }

    async def health_handler(self, request: web.Request) -> web.Response:
        """
        Handle health check requests.

        Returns:
            200 with counters when the store answers, 500 otherwise.
        """
        try:
            counters = await asyncio.to_thread(self._collect)
        except sqlite3.Error as e:
            logger.error("Health Check Error", [
                ("Error", str(e)[:100]),
            ])
            return web.json_response(
                {"status": "error", "store": "unavailable", "error": str(e)},
                status=500,
            )

        status = {
            "status": "healthy",
            "store": "ok",
            **counters,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        logger.debug(f"Health check: {status['status']}")
        return web.json_response(status)

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        """Start serving without blocking the caller."""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, "0.0.0.0", self.port)
            await site.start()

            logger.tree("Health Server Started", [
                ("Port", str(self.port)),
                ("Endpoint", f"http://0.0.0.0:{self.port}/health"),
            ], emoji="🏥")

        except OSError as e:
            logger.error("Health Server Startup Failed", [
                ("Port", str(self.port)),
                ("Error", str(e)[:100]),
            ])

    async def stop(self) -> None:
        """Stop the server. Safe to call even if it never started."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Health check server stopped")


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["HealthCheckServer"]
