"""
AntiSpam - Anti-Spam Service
============================

Glue between inbound events, the detection core and the action executor.

DESIGN:
    Every dependency is passed in (see src/bootstrap.py); the service
    keeps no per-message state of its own. A message goes through the
    new-account link check first and, only when that does not fire,
    through the cache and the correlation detector, so at most one
    incident is opened per message.

    Platform actions run after the incident exists. If the process dies
    between opening the incident and running them, the incident stays
    pending for an operator to pick up.
"""

import dataclasses
import time
from datetime import timedelta
from typing import Callable, Optional, Sequence, assert_never

from src.core.constants import BAN_REASON
from src.core.errors import CacheUnavailable, ConfigUnavailable
from src.core.logger import logger
from src.utils.async_utils import gather_with_logging, safe_async_operation
from src.utils.time_format import format_duration

from .cache import SlidingWindowCache
from .constants import NEW_USER_CONTENT_PREFIX
from .detector import CorrelationDetector
from .events import InteractionEvent, MessageEvent
from .executor import ActionExecutor, MessageRef
from .incidents import IncidentLifecycle
from .links import NewAccountLinkHeuristic
from .models import CachedMessage, Incident, LinkCheckResult, Resolution, ResolveOutcome, SpamCheckResult
from .settings import DetectionWindow, SettingsProvider


class AntiSpamService:
    """
    Cross-channel spam and new-account link protection.

    Args:
        cache: Shared sliding-window message cache.
        detector: Correlation detector.
        links: New-account link heuristic.
        incidents: Incident lifecycle over the shared store.
        executor: Platform actions.
        settings: Per-guild settings provider.
        default_settings: Used when the provider has nothing for a guild.
        fail_open: Treat cache failures as empty history instead of
            re-raising them.
        clock: Unix time. Cache entries are keyed by arrival on this clock.
    """

    def __init__(
        self,
        cache: SlidingWindowCache,
        detector: CorrelationDetector,
        links: NewAccountLinkHeuristic,
        incidents: IncidentLifecycle,
        executor: ActionExecutor,
        settings: SettingsProvider,
        default_settings: Optional[DetectionWindow] = None,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.cache = cache
        self.detector = detector
        self.links = links
        self.incidents = incidents
        self.executor = executor
        self.settings = settings
        self.default_settings = default_settings or DetectionWindow()
        self.fail_open = fail_open
        self._clock = clock

    # =========================================================================
    # Settings
    # =========================================================================

    async def _load_settings(self, guild_id: int) -> DetectionWindow:
        try:
            return await self.settings.get_detection_window(guild_id)
        except ConfigUnavailable:
            logger.debug("Using Default Detection Settings", [("Guild", str(guild_id))])
            return self.default_settings

    # =========================================================================
    # Messages
    # =========================================================================

    async def process_message(self, event: MessageEvent) -> Optional[Incident]:
        """
        Run detection for one inbound message.

        Returns:
            The incident opened for this message, or None.

        Raises:
            CacheUnavailable: If the cache failed and fail_open is off.
        """
        if event.is_bot or event.is_empty:
            return None

        settings = await self._load_settings(event.guild_id)
        if not settings.enabled:
            return None

        if settings.detect_new_user_links and event.content.strip():
            link_result = await self.links.check(
                event.guild_id, event.user_id, event.content, settings, event.author_joined_at,
            )
            if link_result.flagged:
                return await self._handle_new_user_link(event, settings, link_result)

        # Keyed by arrival on the service clock, never the client timestamp
        posted_at = int(self._clock())
        message = CachedMessage(
            content=event.content,
            channel_id=event.channel_id,
            message_id=event.message_id,
            posted_at=posted_at,
            attachment_count=event.attachment_count,
        )

        try:
            prior = await self.cache.add(event.guild_id, event.user_id, message, settings.window_seconds)
        except CacheUnavailable as e:
            if not self.fail_open:
                raise
            logger.warning("Cache Unavailable, Treating As No History", [
                ("Guild", str(event.guild_id)),
                ("User", str(event.user_id)),
                ("Error", str(e)[:100]),
            ])
            prior = []

        result = self.detector.evaluate(message, prior, settings)
        if not result.is_spam:
            return None

        return await self._handle_spam(event, settings, result)

    async def _handle_spam(
        self,
        event: MessageEvent,
        settings: DetectionWindow,
        result: SpamCheckResult,
    ) -> Incident:
        incident = await self.incidents.open(
            event.guild_id, event.user_id, event.username, event.content, result.channel_ids,
        )
        refs = [(m.channel_id, m.message_id) for m in result.matching_messages]
        await self._enforce(event, settings, refs)
        return await self._post_card(incident, settings)

    async def _handle_new_user_link(
        self,
        event: MessageEvent,
        settings: DetectionWindow,
        result: LinkCheckResult,
    ) -> Incident:
        prefix = NEW_USER_CONTENT_PREFIX.format(duration=format_duration(result.member_for or timedelta(0)))
        incident = await self.incidents.open(
            event.guild_id, event.user_id, event.username, prefix + event.content, [event.channel_id],
        )
        await self._enforce(event, settings, [(event.channel_id, event.message_id)])
        return await self._post_card(incident, settings)

    async def _enforce(self, event: MessageEvent, settings: DetectionWindow, refs: Sequence[MessageRef]) -> None:
        """Delete and mute as the guild's settings ask. Failures are logged, not raised."""
        operations = []
        if settings.delete_messages and refs:
            operations.append(("Delete Messages", self.executor.delete_messages(event.guild_id, list(refs))))
        if settings.mute_on_spam:
            operations.append((
                "Mute User",
                self.executor.mute(event.guild_id, event.user_id, timedelta(minutes=settings.mute_duration_minutes)),
            ))
        if operations:
            await gather_with_logging(*operations, context="Spam Handling")

    async def _post_card(self, incident: Incident, settings: DetectionWindow) -> Incident:
        if settings.alert_channel_id is None:
            return incident

        alert = await safe_async_operation(
            "Post Incident Card", self.executor.post_or_update_incident_card(incident),
        )
        if alert is None:
            return incident

        await self.incidents.attach_alert_reference(incident.id, alert)
        return dataclasses.replace(incident, alert=alert)

    # =========================================================================
    # Moderator Interactions
    # =========================================================================

    async def process_interaction(self, event: InteractionEvent) -> Optional[ResolveOutcome]:
        """
        Apply a moderator's ban or release decision.

        Returns:
            The resolve outcome, or None if the interaction isn't ours.
        """
        button = event.button_action()
        if button is not None:
            incident_id, resolution = button
        else:
            resolution = event.reaction_action()
            if resolution is None or event.alert_message_id is None:
                return None
            found = await self.incidents.get_by_alert_message(event.alert_message_id)
            if found is None:
                logger.debug("Reaction On Unknown Alert", [("Message", str(event.alert_message_id))])
                return ResolveOutcome.ALREADY_HANDLED
            incident_id = found.id

        outcome = await self.incidents.resolve(incident_id, event.moderator, resolution, event.note)
        incident = await self.incidents.get(incident_id)
        if incident is None:
            return outcome

        if outcome is ResolveOutcome.APPLIED:
            await self._apply_resolution(incident, resolution)
            await safe_async_operation(
                "Update Incident Card", self.executor.post_or_update_incident_card(incident, resolution),
            )
        elif incident.resolution is not None:
            await safe_async_operation(
                "Refresh Incident Card", self.executor.post_or_update_incident_card(incident, incident.resolution),
            )

        return outcome

    async def _apply_resolution(self, incident: Incident, resolution: Resolution) -> None:
        if resolution is Resolution.BAN:
            await safe_async_operation(
                "Ban User", self.executor.ban(incident.guild_id, incident.user_id, BAN_REASON),
            )
        elif resolution is Resolution.RELEASE:
            await safe_async_operation(
                "Unmute User", self.executor.unmute(incident.guild_id, incident.user_id),
            )
        else:
            assert_never(resolution)


__all__ = ["AntiSpamService"]
