"""
AntiSpam - Database Type Definitions
====================================

TypedDict definitions for database records.
"""

from typing import List, Optional, TypedDict


class IncidentRecord(TypedDict, total=False):
    """Type for spam incident records returned from database."""
    id: int
    guild_id: int
    user_id: int
    username: str
    content: str
    channel_ids: List[int]
    status: str
    alert_channel_id: Optional[int]
    alert_message_id: Optional[int]
    handled_by_user_id: Optional[int]
    handled_by_username: Optional[str]
    moderator_note: Optional[str]
    created_at: float
    handled_at: Optional[float]


class CacheKeyRecord(TypedDict, total=False):
    """Type for message cache key records."""
    guild_id: int
    user_id: int
    expires_at: float
