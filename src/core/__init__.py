"""
AntiSpam - Core Package
=======================

Configuration, logging, errors, the sqlite store and health monitoring.

DESIGN:
    The logger is the only process-wide instance. The database manager
    and everything built on it are constructed explicitly and passed to
    their users (see src/bootstrap.py).
"""

# =============================================================================
# Core Imports
# =============================================================================

from .config import Config, ConfigValidationError, get_config, load_config

from .database import DatabaseManager

from .errors import AntiSpamError, CacheUnavailable, ConfigUnavailable, InvalidInput, StoreUnavailable

from .logger import logger, TreeLogger

from .health import HealthCheckServer


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    # Config
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    # Database
    "DatabaseManager",
    # Errors
    "AntiSpamError",
    "StoreUnavailable",
    "CacheUnavailable",
    "ConfigUnavailable",
    "InvalidInput",
    # Logger
    "logger",
    "TreeLogger",
    # Health
    "HealthCheckServer",
]
