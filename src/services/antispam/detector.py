"""
Anti-Spam Correlation Detector
==============================

Decides whether one user's recent messages form a cross-channel campaign.

DESIGN:
    Two independent tracks, each with its own minimum-channel rule:

    - Text: prior messages whose similarity to the new one reaches the
      threshold, plus the new message itself.
    - Attachments: prior messages carrying attachments, plus the new one
      if it has any. Content is never inspected.

    The evidence returned (and later deleted) only contains messages from
    tracks that crossed their threshold.
"""

from typing import Iterable, List, Sequence, Tuple, assert_never

from src.core.logger import logger

from . import similarity
from .models import CachedMessage, SpamCheckResult, SpamReason
from .settings import DetectionWindow


def _distinct_channels(messages: Iterable[CachedMessage]) -> frozenset:
    return frozenset(m.channel_id for m in messages)


def _reason_for(is_text_spam: bool, is_attachment_spam: bool) -> SpamReason:
    if is_text_spam and is_attachment_spam:
        return SpamReason.BOTH
    if is_text_spam:
        return SpamReason.SIMILAR_TEXT
    if is_attachment_spam:
        return SpamReason.ATTACHMENT_SPAM
    return SpamReason.NONE


def _evidence(
    reason: SpamReason,
    text_matches: List[CachedMessage],
    attachment_matches: List[CachedMessage],
) -> Tuple[CachedMessage, ...]:
    """Messages the fired track(s) vouch for, without duplicates, oldest first."""
    if reason is SpamReason.NONE:
        return ()
    elif reason is SpamReason.SIMILAR_TEXT:
        chosen = text_matches
    elif reason is SpamReason.ATTACHMENT_SPAM:
        chosen = attachment_matches
    elif reason is SpamReason.BOTH:
        chosen = text_matches + attachment_matches
    else:
        assert_never(reason)

    # Duplicate deliveries share a message id; keep the first
    seen = set()
    unique: List[CachedMessage] = []
    for msg in chosen:
        key = (msg.channel_id, msg.message_id, msg.posted_at)
        if key not in seen:
            seen.add(key)
            unique.append(msg)
    unique.sort(key=lambda m: m.posted_at)
    return tuple(unique)


class CorrelationDetector:
    """Stateless evaluator; one instance can serve every guild."""

    def evaluate(
        self,
        message: CachedMessage,
        prior: Sequence[CachedMessage],
        settings: DetectionWindow,
    ) -> SpamCheckResult:
        """
        Evaluate ``message`` against the window that preceded it.

        Args:
            message: The message just added to the cache.
            prior: Window contents returned by SlidingWindowCache.add().
            settings: The guild's detection settings.

        Returns:
            SpamCheckResult; reason NONE when neither track fired.
        """
        # Text track
        text_matches: List[CachedMessage] = []
        max_similarity = 0.0
        if similarity.normalize(message.content):
            for old in prior:
                if not similarity.normalize(old.content):
                    continue
                score = similarity.calculate(message.content, old.content)
                if score >= settings.similarity_threshold:
                    text_matches.append(old)
                max_similarity = max(max_similarity, score)
            text_matches.append(message)

        # Attachment track
        attachment_matches = [old for old in prior if old.has_attachments]
        if message.has_attachments:
            attachment_matches.append(message)

        text_channels = _distinct_channels(text_matches)
        attachment_channels = _distinct_channels(attachment_matches)

        is_text_spam = len(text_channels) >= settings.min_channels
        is_attachment_spam = len(attachment_channels) >= settings.min_channels
        reason = _reason_for(is_text_spam, is_attachment_spam)

        evidence = _evidence(reason, text_matches, attachment_matches)
        result = SpamCheckResult(
            is_spam=reason is not SpamReason.NONE,
            reason=reason,
            matching_messages=evidence,
            channel_ids=_distinct_channels(evidence),
            max_similarity=max_similarity,
            total_attachments=sum(m.attachment_count for m in evidence if m.has_attachments)
            if is_attachment_spam else 0,
        )

        if result.is_spam:
            logger.tree("Cross-Channel Spam Detected", [
                ("Reason", reason.value),
                ("Channels", str(result.channel_count)),
                ("Messages", str(len(evidence))),
                ("Max Similarity", f"{max_similarity:.2f}"),
            ], emoji="🚨")

        return result


__all__ = ["CorrelationDetector"]
