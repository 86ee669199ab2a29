"""
AntiSpam - Configuration Module
===============================

Process configuration loaded from environment variables.

DESIGN:
    This module provides a single source of truth for process-level settings
    (store location, cache bounds, default detection values), loaded from
    environment variables at startup. Per-community detection settings are
    NOT read here; they come from the settings provider at evaluation time,
    and the DEFAULT_* values below only build the fallback used when a
    community has no stored settings.

    Key patterns:
    - get_config() caches one Config per process for main.py
    - Library code receives the Config explicitly (see src/bootstrap.py)
    - Out-of-range integers are clamped with a warning, not rejected
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from src.core.constants import (
    CACHE_KEY_TTL,
    CACHE_MAX_MESSAGES,
    CACHE_MAX_MESSAGES_MAX,
    CACHE_MAX_MESSAGES_MIN,
    CACHE_SWEEP_INTERVAL,
    HEALTH_CHECK_PORT,
)


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Process configuration loaded from environment variables.

    Attributes:
        database_path: sqlite file shared by every process instance.
        cache_max_messages: Retained-count bound per (guild, user) key.
        cache_key_ttl: Seconds before an untouched cache key expires.
        cache_sweep_interval: Seconds between expired-key sweeps.
        cache_fail_open: Treat cache failures as "no history".
        health_port: Port of the aiohttp health endpoint.
        error_webhook_url: Discord webhook for error alerts.
    """

    # -------------------------------------------------------------------------
    # Store
    # -------------------------------------------------------------------------

    database_path: Path = Path("data") / "antispam.db"

    # -------------------------------------------------------------------------
    # Message Cache
    # -------------------------------------------------------------------------

    cache_max_messages: int = CACHE_MAX_MESSAGES
    cache_key_ttl: int = CACHE_KEY_TTL
    cache_sweep_interval: int = CACHE_SWEEP_INTERVAL
    cache_fail_open: bool = True

    # -------------------------------------------------------------------------
    # Default Detection Settings
    # -------------------------------------------------------------------------

    default_min_channels: int = 3
    default_similarity_percent: int = 70
    default_window_seconds: int = 120
    default_new_account_hours: int = 24
    default_allowed_links: FrozenSet[str] = field(default_factory=frozenset)

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    health_port: int = HEALTH_CHECK_PORT
    error_webhook_url: Optional[str] = None


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """
    Raised when process configuration is invalid.

    DESIGN:
        Custom exception type allows callers to distinguish config
        errors from other startup failures.
    """

    pass


def _parse_int_with_default(value: Optional[str], default: int, name: str, min_val: int = None, max_val: int = None) -> int:
    """
    Parse optional integer with default and range validation.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).

    Returns:
        Parsed integer within valid range, or default.
    """
    from src.core.logger import logger

    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_bool(value: Optional[str], default: bool, name: str) -> bool:
    """
    Parse a boolean environment variable.

    Raises:
        ConfigValidationError: If the value is not a recognised boolean.
    """
    if value is None or value.strip() == "":
        return default
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigValidationError(f"Invalid boolean for {name}: {value}")


def _parse_str_set(value: Optional[str]) -> FrozenSet[str]:
    """
    Parse comma-separated string to a set of lowercase entries.

    Args:
        value: Comma-separated string (e.g., "youtube.com,github.com/myorg").

    Returns:
        Frozen set of entries, empty if input is None or empty.
    """
    if not value:
        return frozenset()
    return frozenset(part.strip().lower() for part in value.split(",") if part.strip())


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """
    Validate URL format for webhooks.

    Returns:
        URL if valid, None if invalid or empty.
    """
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from src.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.

    Raises:
        ConfigValidationError: If a boolean variable is malformed.
    """
    db_path = os.getenv("ANTISPAM_DB_PATH")

    return Config(
        database_path=Path(db_path) if db_path else Path("data") / "antispam.db",
        cache_max_messages=_parse_int_with_default(
            os.getenv("CACHE_MAX_MESSAGES"), CACHE_MAX_MESSAGES, "CACHE_MAX_MESSAGES",
            min_val=CACHE_MAX_MESSAGES_MIN, max_val=CACHE_MAX_MESSAGES_MAX,
        ),
        cache_key_ttl=_parse_int_with_default(
            os.getenv("CACHE_KEY_TTL_SECONDS"), CACHE_KEY_TTL, "CACHE_KEY_TTL_SECONDS", min_val=600, max_val=86400
        ),
        cache_sweep_interval=_parse_int_with_default(
            os.getenv("CACHE_SWEEP_INTERVAL"), CACHE_SWEEP_INTERVAL, "CACHE_SWEEP_INTERVAL", min_val=30, max_val=3600
        ),
        cache_fail_open=_parse_bool(os.getenv("CACHE_FAIL_OPEN"), True, "CACHE_FAIL_OPEN"),
        default_min_channels=_parse_int_with_default(
            os.getenv("DEFAULT_MIN_CHANNELS"), 3, "DEFAULT_MIN_CHANNELS", min_val=2, max_val=10
        ),
        default_similarity_percent=_parse_int_with_default(
            os.getenv("DEFAULT_SIMILARITY_PERCENT"), 70, "DEFAULT_SIMILARITY_PERCENT", min_val=50, max_val=100
        ),
        default_window_seconds=_parse_int_with_default(
            os.getenv("DEFAULT_WINDOW_SECONDS"), 120, "DEFAULT_WINDOW_SECONDS", min_val=10, max_val=600
        ),
        default_new_account_hours=_parse_int_with_default(
            os.getenv("DEFAULT_NEW_ACCOUNT_HOURS"), 24, "DEFAULT_NEW_ACCOUNT_HOURS", min_val=1, max_val=168
        ),
        default_allowed_links=_parse_str_set(os.getenv("DEFAULT_ALLOWED_LINKS")),
        health_port=_parse_int_with_default(
            os.getenv("HEALTH_PORT"), HEALTH_CHECK_PORT, "HEALTH_PORT", min_val=1, max_val=65535
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the process configuration, loading it on first use.

    Returns:
        The cached Config instance.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def validate_and_log_config() -> Config:
    """
    Validate configuration and log a summary at startup.

    Raises:
        ConfigValidationError: If configuration is invalid.
    """
    from src.core.logger import logger

    config = get_config()

    logger.tree("Configuration Validated", [
        ("Database", str(config.database_path)),
        ("Cache Bound", f"{config.cache_max_messages} msgs / key"),
        ("Cache TTL", f"{config.cache_key_ttl}s"),
        ("Fail Open", "Yes" if config.cache_fail_open else "No"),
        ("Default Window", f"{config.default_min_channels} channels / {config.default_window_seconds}s"),
        ("Webhook Alerts", "Enabled" if config.error_webhook_url else "Disabled"),
    ], emoji="⚙️")

    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "validate_and_log_config",
]
