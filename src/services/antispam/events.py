"""
Anti-Spam Inbound Events
========================

Pydantic models for the payloads the pipeline driver hands to the core.

DESIGN:
    Payloads arrive as dicts or raw JSON from whatever broker the driver
    uses. Validation failures become InvalidInput so the driver can drop
    the event with a diagnostic instead of retrying it.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.core.errors import InvalidInput

from .constants import BUTTON_ID_PATTERN, REACTION_ACTIONS
from .models import Moderator, Resolution


Payload = Union[Mapping[str, Any], str, bytes]


# =============================================================================
# Message Events
# =============================================================================

class MessageEvent(BaseModel):
    """One message posted in a guild."""
    model_config = ConfigDict(frozen=True)

    guild_id: int = Field(description="Guild the message was posted in")
    channel_id: int = Field(description="Channel the message was posted in")
    message_id: int = Field(description="Platform message ID")
    user_id: int = Field(description="Author ID")
    username: str = Field("", description="Author display name")
    content: str = Field("", description="Raw message text")
    is_bot: bool = Field(False, description="Author is a bot or webhook")
    attachment_count: int = Field(0, ge=0, description="Number of attachments")
    timestamp: Optional[datetime] = Field(None, description="Client-reported post time, informational only")
    author_joined_at: Optional[datetime] = Field(None, description="When the author joined the guild")
    event_id: Optional[str] = Field(None, description="Broker delivery ID, for logging")

    @property
    def is_empty(self) -> bool:
        """Blank text and no attachments."""
        return not self.content.strip() and self.attachment_count == 0


# =============================================================================
# Moderator Interactions
# =============================================================================

class InteractionEvent(BaseModel):
    """
    A moderator pressing an incident button or reacting to its card.

    Buttons carry a custom id like ``spam_ban_42``; reactions carry the
    alert message id and the emoji.
    """
    model_config = ConfigDict(frozen=True)

    actor_id: int = Field(description="Moderator user ID")
    actor_name: str = Field("", description="Moderator display name")
    custom_id: Optional[str] = Field(None, description="Button custom ID")
    alert_message_id: Optional[int] = Field(None, description="Reacted-to alert message")
    reaction: Optional[str] = Field(None, description="Reaction emoji")
    note: Optional[str] = Field(None, max_length=500, description="Moderator note")

    @model_validator(mode="after")
    def _require_trigger(self) -> "InteractionEvent":
        if self.custom_id is None and (self.alert_message_id is None or self.reaction is None):
            raise ValueError("interaction needs custom_id, or alert_message_id with reaction")
        return self

    @property
    def moderator(self) -> Moderator:
        return Moderator(self.actor_id, self.actor_name)

    def button_action(self) -> Optional[Tuple[int, Resolution]]:
        """(incident_id, resolution) encoded in the button, if it is one of ours."""
        if not self.custom_id:
            return None
        match = BUTTON_ID_PATTERN.match(self.custom_id)
        if not match:
            return None
        return int(match.group(2)), Resolution(match.group(1))

    def reaction_action(self) -> Optional[Resolution]:
        """Resolution the reaction stands for, if any."""
        if self.reaction is None:
            return None
        action = REACTION_ACTIONS.get(self.reaction)
        return Resolution(action) if action else None


# =============================================================================
# Parsing
# =============================================================================

def _parse(model: type, payload: Payload) -> Any:
    if not isinstance(payload, (str, bytes, Mapping)):
        raise InvalidInput(f"Invalid {model.__name__}: expected object, got {type(payload).__name__}")
    try:
        if isinstance(payload, (str, bytes)):
            return model.model_validate_json(payload)
        return model.model_validate(dict(payload))
    except ValidationError as e:
        raise InvalidInput(f"Invalid {model.__name__}: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


def parse_message_event(payload: Payload) -> MessageEvent:
    """
    Validate an inbound message payload.

    Raises:
        InvalidInput: If required fields are missing or malformed.
    """
    return _parse(MessageEvent, payload)


def parse_interaction_event(payload: Payload) -> InteractionEvent:
    """
    Validate an inbound moderator interaction.

    Raises:
        InvalidInput: If the payload has no usable trigger.
    """
    return _parse(InteractionEvent, payload)


__all__ = [
    "MessageEvent",
    "InteractionEvent",
    "parse_message_event",
    "parse_interaction_event",
]
