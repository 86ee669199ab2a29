"""
Anti-Spam Action Executor
=========================

Capabilities the detection core needs from the chat platform.

DESIGN:
    The core only calls these; the platform adapter (REST calls, rate
    limiting, retries) lives with the bot process that embeds the core.
    Retrying a failed action is the adapter's job, never the detector's.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Protocol, Tuple

from .models import AlertReference, Incident, Resolution


MessageRef = Tuple[int, int]
"""(channel_id, message_id)"""


class ActionExecutor(Protocol):
    """Moderation actions and lookups performed against the chat platform."""

    async def delete_messages(self, guild_id: int, messages: List[MessageRef]) -> None:
        ...

    async def mute(self, guild_id: int, user_id: int, duration: timedelta) -> None:
        ...

    async def ban(self, guild_id: int, user_id: int, reason: str) -> None:
        ...

    async def unmute(self, guild_id: int, user_id: int) -> None:
        ...

    async def post_or_update_incident_card(
        self,
        incident: Incident,
        resolution: Optional[Resolution] = None,
    ) -> Optional[AlertReference]:
        """
        Post the card for a new incident, or refresh an existing one.

        Returns where the card lives, or None if it could not be posted
        (for example, the guild has no alert channel).
        """
        ...

    async def resolve_invite_destination(self, code: str) -> Optional[int]:
        """Guild id an invite code leads to, or None if unknown."""
        ...

    async def fetch_joined_at(self, guild_id: int, user_id: int) -> Optional[datetime]:
        """When the member joined, or None if it cannot be determined."""
        ...


__all__ = ["ActionExecutor", "MessageRef"]
