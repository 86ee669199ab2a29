"""
Anti-Spam New Account Links
===========================

Flags links posted by members who joined recently.

DESIGN:
    One message is enough; no window is involved. A URL is suspicious
    unless it matches the guild's allow-list or is a jump link into the
    same guild. Invites stay suspicious until the executor confirms they
    lead back to this guild. When the join time can't be determined the
    member is treated as established (fail open).
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, FrozenSet, List, Optional, Tuple
from urllib.parse import urlsplit

from src.core.logger import logger

from .constants import INVITE_PATTERN, JUMP_LINK_PATTERN, LINK_PATTERN, LINK_TRAILING_PUNCTUATION
from .executor import ActionExecutor
from .models import LinkCheckResult
from .settings import DetectionWindow


# =============================================================================
# URL Helpers
# =============================================================================

def extract_urls(content: str) -> List[str]:
    """
    URL-like substrings in order of appearance.

    Picks up scheme or www. links, plus invite links written without a
    scheme. Trailing sentence punctuation is dropped.
    """
    if not content:
        return []

    found: List[Tuple[int, str]] = []
    spans: List[Tuple[int, int]] = []
    for match in LINK_PATTERN.finditer(content):
        spans.append(match.span())
        found.append((match.start(), match.group(0)))

    for match in INVITE_PATTERN.finditer(content):
        start, end = match.span()
        if any(s <= start < e for s, e in spans):
            continue
        found.append((start, match.group(0)))

    urls: List[str] = []
    for _, url in sorted(found):
        url = url.rstrip(LINK_TRAILING_PUNCTUATION)
        if url and url not in urls:
            urls.append(url)
    return urls


def split_url(url: str) -> Tuple[str, str]:
    """
    Lowercased (domain, path) of a URL.

    The domain loses its scheme, ``www.``, port and credentials; the path
    loses its trailing slash, query and fragment.
    """
    candidate = url.strip().lower()
    if "://" not in candidate:
        candidate = "http://" + candidate
    try:
        parts = urlsplit(candidate)
        domain = parts.hostname or ""
    except ValueError:
        return "", ""
    if domain.startswith("www."):
        domain = domain[4:]
    return domain, parts.path.rstrip("/")


def is_allowed(url: str, allowed_links: FrozenSet[str]) -> bool:
    """
    Whether ``url`` matches an allow-list entry.

    An entry without a path allows the domain and its subdomains. An entry
    with a path also requires the URL's path to equal it or sit below it.
    """
    domain, path = split_url(url)
    if not domain:
        return False

    for entry in allowed_links:
        entry_domain, entry_path = split_url(entry)
        if not entry_domain:
            continue
        if domain != entry_domain and not domain.endswith("." + entry_domain):
            continue
        if not entry_path or path == entry_path or path.startswith(entry_path + "/"):
            return True
    return False


# =============================================================================
# Heuristic
# =============================================================================

def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NewAccountLinkHeuristic:
    """
    Args:
        executor: Resolves invites and, when the event lacks it, join times.
        clock: Returns the current time as an aware datetime.
    """

    def __init__(self, executor: ActionExecutor, clock: Callable[[], datetime] = _utc_now) -> None:
        self._executor = executor
        self._clock = clock

    async def _invite_leads_here(self, code: str, guild_id: int) -> bool:
        try:
            destination = await self._executor.resolve_invite_destination(code)
        except Exception as e:
            logger.warning("Invite Resolution Failed", [
                ("Code", code),
                ("Error", str(e)[:100]),
            ])
            return False
        return destination is not None and destination == guild_id

    async def _is_suspicious(self, url: str, guild_id: int, settings: DetectionWindow) -> bool:
        if is_allowed(url, settings.allowed_links):
            return False

        jump = JUMP_LINK_PATTERN.match(url)
        if jump and int(jump.group(1)) == guild_id:
            return False

        invite = INVITE_PATTERN.match(url)
        if invite:
            return not await self._invite_leads_here(invite.group(1), guild_id)

        return True

    async def _joined_at(self, guild_id: int, user_id: int) -> Optional[datetime]:
        try:
            return await self._executor.fetch_joined_at(guild_id, user_id)
        except Exception as e:
            logger.warning("Join Time Lookup Failed", [
                ("User", str(user_id)),
                ("Error", str(e)[:100]),
            ])
            return None

    async def check(
        self,
        guild_id: int,
        user_id: int,
        content: str,
        settings: DetectionWindow,
        joined_at: Optional[datetime] = None,
    ) -> LinkCheckResult:
        """
        Evaluate one message.

        Args:
            joined_at: Join time from the inbound event. Fetched from the
                executor only when missing.
        """
        suspicious: List[str] = []
        for url in extract_urls(content):
            if await self._is_suspicious(url, guild_id, settings):
                suspicious.append(url)

        if not suspicious:
            return LinkCheckResult(flagged=False)

        if joined_at is None:
            joined_at = await self._joined_at(guild_id, user_id)
        if joined_at is None:
            logger.debug("Join Time Unknown, Link Not Flagged", [("User", str(user_id))])
            return LinkCheckResult(flagged=False, suspicious_urls=tuple(suspicious))

        if joined_at.tzinfo is None:
            joined_at = joined_at.replace(tzinfo=timezone.utc)
        member_for = self._clock() - joined_at

        if member_for >= timedelta(hours=settings.new_account_threshold_hours):
            return LinkCheckResult(flagged=False, suspicious_urls=tuple(suspicious), member_for=member_for)

        logger.tree("New Account Link Detected", [
            ("User", str(user_id)),
            ("Guild", str(guild_id)),
            ("Member For", str(member_for).split(".")[0]),
            ("URLs", ", ".join(u[:50] for u in suspicious[:3])),
        ], emoji="🔗")

        return LinkCheckResult(flagged=True, suspicious_urls=tuple(suspicious), member_for=member_for)


__all__ = [
    "NewAccountLinkHeuristic",
    "extract_urls",
    "split_url",
    "is_allowed",
]
