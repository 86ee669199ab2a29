"""
Anti-Spam Settings
==================

Per-community detection settings and the provider that supplies them.

DESIGN:
    DetectionWindow is immutable and validated on construction, so the
    detector never sees an out-of-range value. Settings are looked up
    per evaluation; nothing here caches them across calls. Stored values
    coming from a database or dashboard go through from_mapping(), which
    clamps into range with a warning instead of rejecting the guild.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional, Protocol, Tuple

from src.core.config import Config, ConfigValidationError, _parse_bool
from src.core.errors import ConfigUnavailable, InvalidInput
from src.core.logger import logger

from .constants import (
    DEFAULT_MIN_CHANNELS,
    DEFAULT_MUTE_DURATION_MINUTES,
    DEFAULT_NEW_ACCOUNT_HOURS,
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_WINDOW_SECONDS,
    MIN_CHANNELS_RANGE,
    MUTE_DURATION_MINUTES_RANGE,
    NEW_ACCOUNT_HOURS_RANGE,
    SIMILARITY_THRESHOLD_RANGE,
    WINDOW_SECONDS_RANGE,
)


# =============================================================================
# Detection Window
# =============================================================================

_RANGES: Dict[str, Tuple[float, float]] = {
    "min_channels": MIN_CHANNELS_RANGE,
    "similarity_threshold": SIMILARITY_THRESHOLD_RANGE,
    "window_seconds": WINDOW_SECONDS_RANGE,
    "new_account_threshold_hours": NEW_ACCOUNT_HOURS_RANGE,
    "mute_duration_minutes": MUTE_DURATION_MINUTES_RANGE,
}


def _normalize_links(links: Iterable[str]) -> FrozenSet[str]:
    if isinstance(links, str):
        raise InvalidInput(f"allowed_links must be a collection of entries, got string {links!r}")
    return frozenset(link.strip().lower() for link in links if link and link.strip())


def _stored_bool(name: str, raw: Any) -> bool:
    """Booleans from a key/value store arrive as bools, 0/1 or strings."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            return _parse_bool(raw, False, name)
        except ConfigValidationError:
            pass
    raise InvalidInput(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class DetectionWindow:
    """
    Detection settings for one guild.

    Attributes:
        min_channels: Distinct channels needed before a burst is spam.
        similarity_threshold: Minimum shingle similarity, in [0.5, 1.0].
        window_seconds: How far back the sliding window reaches.
        new_account_threshold_hours: Members younger than this can't post
            unapproved links.
        allowed_links: Domains (or domain/path prefixes) exempt from the
            new-account link check.
        enabled: Guild-level kill switch.
        alert_channel_id: Where incident cards are posted.
        delete_messages: Delete the offending messages on detection.
        mute_on_spam: Mute the author on detection.
        mute_duration_minutes: Length of that mute.
        detect_new_user_links: Run the new-account link check.
    """

    min_channels: int = DEFAULT_MIN_CHANNELS
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    new_account_threshold_hours: int = DEFAULT_NEW_ACCOUNT_HOURS
    allowed_links: FrozenSet[str] = field(default_factory=frozenset)
    enabled: bool = True
    alert_channel_id: Optional[int] = None
    delete_messages: bool = True
    mute_on_spam: bool = True
    mute_duration_minutes: int = DEFAULT_MUTE_DURATION_MINUTES
    detect_new_user_links: bool = True

    def __post_init__(self) -> None:
        for name, (low, high) in _RANGES.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInput(f"{name} must be a number, got {value!r}")
            if not low <= value <= high:
                raise InvalidInput(f"{name}={value} outside [{low}, {high}]")
        object.__setattr__(self, "allowed_links", _normalize_links(self.allowed_links))

    def with_overrides(self, **changes: Any) -> "DetectionWindow":
        """Copy with some fields replaced. Re-validates."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: Optional["DetectionWindow"] = None) -> "DetectionWindow":
        """
        Build settings from stored key/value data.

        Unknown keys are ignored, missing keys fall back to ``base`` (or the
        defaults) and numeric values outside their range are clamped with
        a warning. Non-numeric values and unrecognised booleans raise
        InvalidInput.
        """
        base = base or cls()
        values: Dict[str, Any] = {}

        for name, (low, high) in _RANGES.items():
            if data.get(name) is None:
                continue
            raw = data[name]
            try:
                value = float(raw) if name == "similarity_threshold" else int(raw)
            except (TypeError, ValueError):
                raise InvalidInput(f"{name} must be a number, got {raw!r}") from None
            clamped = min(max(value, low), high)
            if clamped != value:
                logger.warning("Detection Setting Clamped", [
                    ("Setting", name),
                    ("Stored", str(value)),
                    ("Using", str(clamped)),
                ])
            values[name] = type(value)(clamped)

        for name in ("enabled", "delete_messages", "mute_on_spam", "detect_new_user_links"):
            if data.get(name) is not None:
                values[name] = _stored_bool(name, data[name])

        if data.get("alert_channel_id") is not None:
            values["alert_channel_id"] = int(data["alert_channel_id"])

        links = data.get("allowed_links")
        if links is not None:
            if isinstance(links, str):
                links = links.split(",")
            values["allowed_links"] = _normalize_links(links)

        return replace(base, **values)


def defaults_from_config(config: Config) -> DetectionWindow:
    """Fallback settings for guilds with nothing stored."""
    return DetectionWindow(
        min_channels=config.default_min_channels,
        similarity_threshold=config.default_similarity_percent / 100,
        window_seconds=config.default_window_seconds,
        new_account_threshold_hours=config.default_new_account_hours,
        allowed_links=config.default_allowed_links,
    )


# =============================================================================
# Settings Provider
# =============================================================================

class SettingsProvider(Protocol):
    """
    Supplies a guild's detection settings.

    Implementations raise ConfigUnavailable when a guild has no stored
    settings; the caller then falls back to its defaults.
    """

    async def get_detection_window(self, guild_id: int) -> DetectionWindow:
        ...


class StaticSettingsProvider:
    """
    In-memory provider: explicit per-guild overrides over one default.

    Args:
        overrides: guild_id -> settings for guilds with stored values.
        default: Returned for every other guild. When None, those guilds
            raise ConfigUnavailable instead.
    """

    def __init__(
        self,
        overrides: Optional[Mapping[int, DetectionWindow]] = None,
        default: Optional[DetectionWindow] = None,
    ) -> None:
        self._overrides: Dict[int, DetectionWindow] = dict(overrides or {})
        self._default = default

    def set(self, guild_id: int, settings: DetectionWindow) -> None:
        self._overrides[guild_id] = settings

    async def get_detection_window(self, guild_id: int) -> DetectionWindow:
        settings = self._overrides.get(guild_id, self._default)
        if settings is None:
            raise ConfigUnavailable(f"No detection settings for guild {guild_id}")
        return settings


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "DetectionWindow",
    "SettingsProvider",
    "StaticSettingsProvider",
    "defaults_from_config",
]
