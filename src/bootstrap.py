"""
AntiSpam - Component Wiring
===========================

Builds the detection components for one process.

DESIGN:
    Everything stateful is created here once and handed down by
    reference. There are no module-level instances to reach for, so two
    wirings (for example in tests) never share state unless they share
    a database file.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from src.core.config import Config
from src.core.database import DatabaseManager
from src.core.logger import logger
from src.services.antispam import (
    ActionExecutor,
    AntiSpamService,
    CorrelationDetector,
    IncidentLifecycle,
    NewAccountLinkHeuristic,
    SettingsProvider,
    SlidingWindowCache,
    StaticSettingsProvider,
    defaults_from_config,
)


@dataclass
class AntiSpamComponents:
    """Handles to the wired components, for drivers and shutdown."""
    db: DatabaseManager
    cache: SlidingWindowCache
    incidents: IncidentLifecycle
    service: AntiSpamService

    def close(self) -> None:
        self.db.close()


def build_components(
    config: Config,
    executor: ActionExecutor,
    settings: Optional[SettingsProvider] = None,
    db: Optional[DatabaseManager] = None,
    clock: Callable[[], float] = time.time,
) -> AntiSpamComponents:
    """
    Wire the store, cache, detectors and service.

    Args:
        config: Process configuration.
        executor: Platform actions, supplied by the embedding bot.
        settings: Per-guild settings; defaults to config values for every guild.
        db: Existing store to reuse; opened from config.database_path otherwise.
        clock: Unix time source shared by the cache and incident store.
    """
    db = db or DatabaseManager(config.database_path)
    defaults = defaults_from_config(config)

    cache = SlidingWindowCache(
        db,
        max_messages=config.cache_max_messages,
        ttl_seconds=config.cache_key_ttl,
        clock=clock,
    )
    incidents = IncidentLifecycle(db, clock=clock)
    service = AntiSpamService(
        cache=cache,
        detector=CorrelationDetector(),
        links=NewAccountLinkHeuristic(executor),
        incidents=incidents,
        executor=executor,
        settings=settings or StaticSettingsProvider(default=defaults),
        default_settings=defaults,
        fail_open=config.cache_fail_open,
        clock=clock,
    )

    logger.tree("Anti-Spam Components Ready", [
        ("Store", str(db.db_path)),
        ("Min Channels", str(defaults.min_channels)),
        ("Similarity", f"{defaults.similarity_threshold:.2f}"),
        ("Window", f"{defaults.window_seconds}s"),
        ("Fail Open", "Yes" if config.cache_fail_open else "No"),
    ], emoji="🛡️")

    return AntiSpamComponents(db=db, cache=cache, incidents=incidents, service=service)


__all__ = ["AntiSpamComponents", "build_components"]
