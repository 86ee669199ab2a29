"""
AntiSpam - Cross-Channel Spam Detection
=======================================

Sliding-window cache, correlation detector, new-account link heuristic
and incident lifecycle, plus the service that wires them together.
"""

from .cache import SlidingWindowCache
from .detector import CorrelationDetector
from .events import InteractionEvent, MessageEvent, parse_interaction_event, parse_message_event
from .executor import ActionExecutor
from .incidents import IncidentLifecycle
from .links import NewAccountLinkHeuristic
from .models import (
    AlertReference,
    CachedMessage,
    Incident,
    IncidentStatus,
    LinkCheckResult,
    Moderator,
    Resolution,
    ResolveOutcome,
    SpamCheckResult,
    SpamReason,
)
from .service import AntiSpamService
from .settings import DetectionWindow, SettingsProvider, StaticSettingsProvider, defaults_from_config
from . import similarity


__all__ = [
    # Components
    "SlidingWindowCache",
    "CorrelationDetector",
    "NewAccountLinkHeuristic",
    "IncidentLifecycle",
    "AntiSpamService",
    "similarity",
    # Collaborators
    "ActionExecutor",
    "SettingsProvider",
    "StaticSettingsProvider",
    "DetectionWindow",
    "defaults_from_config",
    # Events
    "MessageEvent",
    "InteractionEvent",
    "parse_message_event",
    "parse_interaction_event",
    # Models
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
