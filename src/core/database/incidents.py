"""
AntiSpam - Database Incident Operations Module
==============================================

Spam incident persistence and the pending -> terminal transition.

DESIGN:
    Resolution is a compare-and-set on status = 'pending'. The UPDATE's
    row count tells the caller whether this request won; losers read the
    stored outcome instead. No lock is held across calls.
"""

import json
from typing import TYPE_CHECKING, List, Optional

from src.core.database.base import _safe_json_loads
from src.core.database.models import IncidentRecord

if TYPE_CHECKING:
    import sqlite3

    from src.core.database.manager import DatabaseManager


def _row_to_incident(row: "sqlite3.Row") -> IncidentRecord:
    """Decode a spam_incidents row."""
    record: IncidentRecord = dict(row)  # type: ignore[assignment]
    record["channel_ids"] = [int(c) for c in _safe_json_loads(row["channel_ids"], [])]
    return record


class IncidentsMixin:
    """Mixin for spam incident operations."""

    def create_incident(
        self: "DatabaseManager",
        guild_id: int,
        user_id: int,
        username: str,
        content: str,
        channel_ids: List[int],
        created_at: float,
    ) -> IncidentRecord:
        """Insert a pending incident and return the stored record."""
        with self.transaction() as tx:
            tx.execute(
                """INSERT INTO spam_incidents
                   (guild_id, user_id, username, content, channel_ids, status, created_at)
                   VALUES (?, ?, ?, ?, ?, 'pending', ?)""",
                (guild_id, user_id, username, content, json.dumps(sorted(channel_ids)), created_at),
            )
            incident_id = tx.lastrowid
            tx.execute("SELECT * FROM spam_incidents WHERE id = ?", (incident_id,))
            row = tx.fetchone()
        return _row_to_incident(row)

    def get_incident(self: "DatabaseManager", incident_id: int) -> Optional[IncidentRecord]:
        row = self.fetchone("SELECT * FROM spam_incidents WHERE id = ?", (incident_id,))
        return _row_to_incident(row) if row else None

    def get_incident_by_alert_message(self: "DatabaseManager", message_id: int) -> Optional[IncidentRecord]:
        """Look up the incident whose card is the given alert message."""
        row = self.fetchone(
            "SELECT * FROM spam_incidents WHERE alert_message_id = ? ORDER BY id DESC LIMIT 1",
            (message_id,),
        )
        return _row_to_incident(row) if row else None

    def resolve_incident(
        self: "DatabaseManager",
        incident_id: int,
        status: str,
        moderator_id: int,
        moderator_name: str,
        handled_at: float,
        note: Optional[str] = None,
    ) -> bool:
        """
        Move a pending incident to a terminal status.

        Returns:
            True if this call performed the transition, False if the
            incident was already terminal or does not exist.
        """
        cursor = self.execute(
            """UPDATE spam_incidents
               SET status = ?, handled_by_user_id = ?, handled_by_username = ?,
                   handled_at = ?, moderator_note = ?
               WHERE id = ? AND status = 'pending'""",
            (status, moderator_id, moderator_name, handled_at, note, incident_id),
        )
        return cursor.rowcount == 1

    def set_incident_alert(
        self: "DatabaseManager",
        incident_id: int,
        channel_id: int,
        message_id: int,
    ) -> bool:
        """
        Record where an incident's alert card was posted.

        Idempotent: repeating the same reference succeeds, a different
        reference for an incident that already has one does not.
        """
        with self.transaction() as tx:
            tx.execute(
                """UPDATE spam_incidents SET alert_channel_id = ?, alert_message_id = ?
                   WHERE id = ? AND alert_message_id IS NULL""",
                (channel_id, message_id, incident_id),
            )
            if tx.rowcount == 1:
                return True
            tx.execute(
                "SELECT alert_channel_id, alert_message_id FROM spam_incidents WHERE id = ?",
                (incident_id,),
            )
            row = tx.fetchone()
        return row is not None and row["alert_channel_id"] == channel_id and row["alert_message_id"] == message_id

    def count_incidents(self: "DatabaseManager", guild_id: Optional[int] = None, status: Optional[str] = None) -> int:
        """Count incidents, optionally filtered by guild and status."""
        query = "SELECT COUNT(*) AS n FROM spam_incidents WHERE 1 = 1"
        params: list = []
        if guild_id is not None:
            query += " AND guild_id = ?"
            params.append(guild_id)
        if status is not None:
            query += " AND status = ?"
            params.append(status)
        row = self.fetchone(query, tuple(params))
        return row["n"] if row else 0
