"""
AntiSpam - Error Taxonomy
=========================

Exception types surfaced by the detection core.

DESIGN:
    Detection-path failures (cache, config) are reported as distinct types
    so the pipeline driver can pick its own retry or fail-open policy.
    Stale moderator references are NOT errors: they come back as
    ResolveOutcome.ALREADY_HANDLED from the incident lifecycle.
"""


class AntiSpamError(Exception):
    """Base class for all errors raised by the anti-spam core."""

    pass


class StoreUnavailable(AntiSpamError):
    """The backing sqlite store could not be reached or stayed locked."""

    pass


class CacheUnavailable(StoreUnavailable):
    """
    The sliding-window cache failed.

    The caller decides whether to treat this as "no history" or to fail
    the message; the core never guesses.
    """

    pass


class ConfigUnavailable(AntiSpamError):
    """No per-community settings were found. Callers fall back to defaults."""

    pass


class InvalidInput(AntiSpamError):
    """Malformed inbound payload or out-of-range value. Dropped, never retried."""

    pass


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "AntiSpamError",
    "StoreUnavailable",
    "CacheUnavailable",
    "ConfigUnavailable",
    "InvalidInput",
]
