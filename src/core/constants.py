"""
AntiSpam - Centralized Constants
================================

All magic numbers and constants are defined here for maintainability.
Import from this module instead of hardcoding values.
"""

# =============================================================================
# Time Constants (in seconds)
# =============================================================================

SECONDS_PER_HOUR = 3600

# =============================================================================
# Network Constants
# =============================================================================

HEALTH_CHECK_PORT = 8080

# =============================================================================
# Message Cache
# =============================================================================

CACHE_MAX_MESSAGES = 50               # Retained entries per (guild, user)
CACHE_MAX_MESSAGES_MIN = 20
CACHE_MAX_MESSAGES_MAX = 200

CACHE_KEY_TTL = SECONDS_PER_HOUR      # Abandoned keys expire after this
CACHE_SWEEP_INTERVAL = 300            # How often expired keys are purged

# =============================================================================
# Database
# =============================================================================

DB_CONNECTION_TIMEOUT = 30.0          # sqlite3.connect timeout
SQLITE_BUSY_TIMEOUT = 5000            # ms; other processes may hold the write lock

# =============================================================================
# Incidents
# =============================================================================

INCIDENT_CONTENT_MAX_LENGTH = 500
BAN_REASON = "Spam detected"

# =============================================================================
# Logging
# =============================================================================

LOG_TRUNCATE_LENGTH = 50
