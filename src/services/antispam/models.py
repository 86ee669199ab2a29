"""
Anti-Spam Data Models
=====================

Dataclasses and enums shared by the cache, the detectors and the
incident lifecycle.
"""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


# =============================================================================
# Cached Messages
# =============================================================================

@dataclass(frozen=True)
class CachedMessage:
    """Fingerprint of one message kept in the sliding window."""
    content: str
    channel_id: int
    message_id: int
    posted_at: int  # unix seconds
    attachment_count: int = 0

    @property
    def has_attachments(self) -> bool:
        return self.attachment_count > 0

    def to_json(self) -> str:
        return json.dumps({
            "content": self.content,
            "channel_id": self.channel_id,
            "message_id": self.message_id,
            "posted_at": self.posted_at,
            "attachment_count": self.attachment_count,
        }, ensure_ascii=False)

    @classmethod
    def from_json(cls, payload: str) -> "CachedMessage":
        data = json.loads(payload)
        return cls(
            content=data.get("content") or "",
            channel_id=int(data["channel_id"]),
            message_id=int(data["message_id"]),
            posted_at=int(data["posted_at"]),
            attachment_count=int(data.get("attachment_count", 0)),
        )


# =============================================================================
# Correlation Results
# =============================================================================

class SpamReason(str, Enum):
    """
    Which detection track fired.

    Closed set: consumers branch on every member and end with
    typing.assert_never, so a new track fails loudly everywhere.
    """

    NONE = "none"
    SIMILAR_TEXT = "similar_text"
    ATTACHMENT_SPAM = "attachment_spam"
    BOTH = "both"


@dataclass(frozen=True)
class SpamCheckResult:
    """Outcome of one correlation evaluation. Never persisted."""
    is_spam: bool
    reason: SpamReason
    matching_messages: Tuple[CachedMessage, ...] = ()
    channel_ids: FrozenSet[int] = frozenset()
    max_similarity: float = 0.0
    total_attachments: int = 0

    @property
    def channel_count(self) -> int:
        return len(self.channel_ids)


# =============================================================================
# New Account Links
# =============================================================================

@dataclass(frozen=True)
class LinkCheckResult:
    """Outcome of the new-account link heuristic."""
    flagged: bool
    suspicious_urls: Tuple[str, ...] = ()
    member_for: Optional[timedelta] = None


# =============================================================================
# Incidents
# =============================================================================

class IncidentStatus(str, Enum):
    """Incident state. PENDING is the only non-terminal state."""

    PENDING = "pending"
    BANNED = "banned"
    RELEASED = "released"

    @property
    def is_terminal(self) -> bool:
        return self is not IncidentStatus.PENDING


class Resolution(str, Enum):
    """Decision a moderator takes on a pending incident."""

    BAN = "ban"
    RELEASE = "release"

    @property
    def target_status(self) -> IncidentStatus:
        if self is Resolution.BAN:
            return IncidentStatus.BANNED
        return IncidentStatus.RELEASED


class ResolveOutcome(str, Enum):
    """Result of a resolution attempt. ALREADY_HANDLED is not an error."""

    APPLIED = "applied"
    ALREADY_HANDLED = "already_handled"


@dataclass(frozen=True)
class AlertReference:
    """Where the incident card lives in the alert channel."""
    channel_id: int
    message_id: int


@dataclass(frozen=True)
class Moderator:
    user_id: int
    username: str


@dataclass(frozen=True)
class Incident:
    """One detected spam or suspicious-new-account event."""
    id: int
    guild_id: int
    user_id: int
    username: str
    content: str
    channel_ids: Tuple[int, ...]
    status: IncidentStatus
    created_at: datetime
    alert: Optional[AlertReference] = None
    handled_by: Optional[Moderator] = None
    note: Optional[str] = None
    handled_at: Optional[datetime] = None

    @property
    def resolution(self) -> Optional[Resolution]:
        if self.status is IncidentStatus.BANNED:
            return Resolution.BAN
        if self.status is IncidentStatus.RELEASED:
            return Resolution.RELEASE
        return None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Incident":
        """Build an incident from a decoded database record."""
        alert = None
        if record.get("alert_message_id") is not None and record.get("alert_channel_id") is not None:
            alert = AlertReference(int(record["alert_channel_id"]), int(record["alert_message_id"]))

        handled_by = None
        if record.get("handled_by_user_id") is not None:
            handled_by = Moderator(int(record["handled_by_user_id"]), record.get("handled_by_username") or "")

        handled_at = record.get("handled_at")

        return cls(
            id=int(record["id"]),
            guild_id=int(record["guild_id"]),
            user_id=int(record["user_id"]),
            username=record["username"],
            content=record["content"],
            channel_ids=tuple(int(c) for c in record.get("channel_ids") or ()),
            status=IncidentStatus(record["status"]),
            created_at=datetime.fromtimestamp(record["created_at"], tz=timezone.utc),
            alert=alert,
            handled_by=handled_by,
            note=record.get("moderator_note"),
            handled_at=datetime.fromtimestamp(handled_at, tz=timezone.utc) if handled_at is not None else None,
        )


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "CachedMessage",
    "SpamReason",
    "SpamCheckResult",
    "LinkCheckResult",
    "IncidentStatus",
    "Resolution",
    "ResolveOutcome",
    "AlertReference",
    "Moderator",
    "Incident",
]
