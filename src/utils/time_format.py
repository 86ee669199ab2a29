"""
AntiSpam - Time Formatting Utils
================================

Compact duration strings for incident content and alert cards.
"""

from datetime import timedelta


def format_duration(delta: timedelta) -> str:
    """
    Format a duration using its two most significant units.

    Examples:
        - 45 minutes: "45m"
        - 125 minutes: "2h 5m"
        - 1500 minutes: "1d 1h"
        - negative or zero: "0m"
    """
    total_minutes = int(delta.total_seconds() // 60)
    if total_minutes <= 0:
        return "0m"

    days, remaining = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remaining, 60)

    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


__all__ = ["format_duration"]
