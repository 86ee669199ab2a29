"""
Anti-Spam Incident Lifecycle
============================

Pending -> Banned | Released, with exactly one winner per incident.

DESIGN:
    Resolution is a conditional UPDATE in the store, not a read followed
    by a write, so it holds across processes sharing the database. Losing
    (or stale) requests get ALREADY_HANDLED, which callers use to skip
    duplicate side effects.
"""

import asyncio
import sqlite3
import time
from typing import Callable, Iterable, Optional

from src.core.constants import INCIDENT_CONTENT_MAX_LENGTH
from src.core.database import DatabaseManager
from src.core.errors import StoreUnavailable
from src.core.logger import logger

from .models import AlertReference, Incident, IncidentStatus, Moderator, Resolution, ResolveOutcome


class IncidentLifecycle:
    """
    Args:
        db: Store holding the spam_incidents table.
        clock: Returns the current unix time in seconds.
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], float] = time.time) -> None:
        self._db = db
        self._clock = clock

    async def open(
        self,
        guild_id: int,
        user_id: int,
        username: str,
        content: str,
        channel_ids: Iterable[int],
    ) -> Incident:
        """Create a pending incident. Content is cut to 500 characters."""
        content = (content or "")[:INCIDENT_CONTENT_MAX_LENGTH]
        channels = sorted(set(int(c) for c in channel_ids))

        try:
            record = await asyncio.to_thread(
                self._db.create_incident, guild_id, user_id, username, content, channels, self._clock(),
            )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident create failed: {e}") from e

        incident = Incident.from_record(record)
        logger.tree("Spam Incident Opened", [
            ("Incident", f"#{incident.id}"),
            ("User", f"{username} ({user_id})"),
            ("Guild", str(guild_id)),
            ("Channels", str(len(channels))),
        ], emoji="📋")
        return incident

    async def resolve(
        self,
        incident_id: int,
        moderator: Moderator,
        resolution: Resolution,
        note: Optional[str] = None,
    ) -> ResolveOutcome:
        """
        Move a pending incident to the resolution's terminal status.

        Unknown ids and already-terminal incidents both return
        ALREADY_HANDLED.
        """
        try:
            applied = await asyncio.to_thread(
                self._db.resolve_incident,
                incident_id,
                resolution.target_status.value,
                moderator.user_id,
                moderator.username,
                self._clock(),
                note,
            )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident resolve failed: {e}") from e

        if not applied:
            logger.debug("Incident Already Handled", [
                ("Incident", f"#{incident_id}"),
                ("Requested", resolution.value),
                ("By", moderator.username),
            ])
            return ResolveOutcome.ALREADY_HANDLED

        logger.tree("Spam Incident Resolved", [
            ("Incident", f"#{incident_id}"),
            ("Resolution", resolution.value),
            ("Moderator", f"{moderator.username} ({moderator.user_id})"),
        ], emoji="⚖️")
        return ResolveOutcome.APPLIED

    async def attach_alert_reference(self, incident_id: int, alert: AlertReference) -> bool:
        """
        Record where the incident card was posted.

        Returns False when the incident is unknown or already points at a
        different card.
        """
        try:
            attached = await asyncio.to_thread(
                self._db.set_incident_alert, incident_id, alert.channel_id, alert.message_id,
            )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident alert update failed: {e}") from e

        if not attached:
            logger.warning("Alert Reference Not Attached", [
                ("Incident", f"#{incident_id}"),
                ("Message", str(alert.message_id)),
            ])
        return attached

    async def get(self, incident_id: int) -> Optional[Incident]:
        try:
            record = await asyncio.to_thread(self._db.get_incident, incident_id)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident lookup failed: {e}") from e
        return Incident.from_record(record) if record else None

    async def get_by_alert_message(self, message_id: int) -> Optional[Incident]:
        """Map a reacted-to alert message back to its incident."""
        try:
            record = await asyncio.to_thread(self._db.get_incident_by_alert_message, message_id)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident lookup failed: {e}") from e
        return Incident.from_record(record) if record else None

    async def count(self, guild_id: Optional[int] = None, status: Optional[IncidentStatus] = None) -> int:
        try:
            return await asyncio.to_thread(
                self._db.count_incidents, guild_id, status.value if status else None,
            )
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Incident count failed: {e}") from e


__all__ = ["IncidentLifecycle"]
