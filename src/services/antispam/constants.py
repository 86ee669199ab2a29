"""
Anti-Spam Constants
===================

Thresholds, ranges and patterns for cross-channel spam detection.
"""

import re
from typing import Dict, FrozenSet


# =============================================================================
# Text Similarity
# =============================================================================

SHINGLE_SIZE = 3

# Zero-width characters stripped before comparison
ZERO_WIDTH_CHARS: FrozenSet[str] = frozenset({
    "\u200b",  # zero-width space
    "\u200c",  # zero-width non-joiner
    "\u200d",  # zero-width joiner
    "\ufeff",  # BOM
})


# =============================================================================
# Detection Settings (defaults and allowed ranges)
# =============================================================================

DEFAULT_MIN_CHANNELS = 3
MIN_CHANNELS_RANGE = (2, 10)

DEFAULT_SIMILARITY_THRESHOLD = 0.7
SIMILARITY_THRESHOLD_RANGE = (0.5, 1.0)

DEFAULT_WINDOW_SECONDS = 120
WINDOW_SECONDS_RANGE = (10, 600)

DEFAULT_NEW_ACCOUNT_HOURS = 24
NEW_ACCOUNT_HOURS_RANGE = (1, 168)

DEFAULT_MUTE_DURATION_MINUTES = 60
MUTE_DURATION_MINUTES_RANGE = (1, 1440)


# =============================================================================
# Link Detection
# =============================================================================

# Anything with a scheme, or a bare www. host
LINK_PATTERN = re.compile(
    r'(?:https?://|www\.)[^\s<>"{}|\\^`\[\]]+',
    re.IGNORECASE,
)

# Invites are commonly posted without a scheme
INVITE_PATTERN = re.compile(
    r'(?:https?://)?(?:www\.)?'
    r'(?:discord\.gg|discord\.com/invite|discordapp\.com/invite)/'
    r'([a-zA-Z0-9\-]+)',
    re.IGNORECASE,
)

# https://discord.com/channels/<guild>/<channel>/<message>
JUMP_LINK_PATTERN = re.compile(
    r'^(?:https?://)?(?:www\.)?(?:ptb\.|canary\.)?(?:discord|discordapp)\.com/channels/'
    r'(\d+)/\d+(?:/\d+)?/?$',
    re.IGNORECASE,
)

# Punctuation that commonly trails a pasted link in prose
LINK_TRAILING_PUNCTUATION = ".,;:!?)'\""


# =============================================================================
# Moderator Interactions
# =============================================================================

# Button custom ids: spam_ban_123 / spam_release_123
BUTTON_ID_PATTERN = re.compile(r'^spam_(ban|release)_(\d+)$')

BAN_EMOJI = "🔨"
RELEASE_EMOJI = "✅"

REACTION_ACTIONS: Dict[str, str] = {
    BAN_EMOJI: "ban",
    RELEASE_EMOJI: "release",
}


# =============================================================================
# Incident Content
# =============================================================================

NEW_USER_CONTENT_PREFIX = "[NEW USER - joined {duration} ago] "
