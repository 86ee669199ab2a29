"""
AntiSpam - New Account Link Tests
=================================

Tests for URL extraction, allow-list matching and the heuristic.
"""

from datetime import timedelta

import pytest

from src.services.antispam import DetectionWindow, NewAccountLinkHeuristic
from src.services.antispam.links import extract_urls, is_allowed, split_url

GUILD = 111
USER = 222


@pytest.fixture
def heuristic(executor, clock):
    return NewAccountLinkHeuristic(executor, clock=clock.as_datetime)


@pytest.fixture
def settings():
    return DetectionWindow(
        new_account_threshold_hours=24,
        allowed_links=frozenset({"youtube.com", "github.com/myorg"}),
    )


class TestExtractUrls:
    """Tests for URL extraction."""

    def test_scheme_and_www_links(self):
        """Both https:// and bare www. links are found."""
        urls = extract_urls("see https://example.com/a and www.test.org")
        assert urls == ["https://example.com/a", "www.test.org"]

    def test_schemeless_invite(self):
        """Invites are picked up without a scheme."""
        assert extract_urls("join discord.gg/abc123 now") == ["discord.gg/abc123"]

    def test_trailing_punctuation_dropped(self):
        """Sentence punctuation is not part of the link."""
        assert extract_urls("go to https://example.com/x.") == ["https://example.com/x"]

    def test_no_duplicates(self):
        """Each URL is reported once."""
        assert extract_urls("https://a.com https://a.com") == ["https://a.com"]

    def test_plain_text(self):
        """No links, no URLs."""
        assert extract_urls("nothing to see here") == []
        assert extract_urls("") == []


class TestAllowList:
    """Tests for allow-list matching."""

    def test_split_url_normalizes(self):
        """Scheme, www., port, credentials and trailing slash are dropped."""
        assert split_url("HTTPS://user:pw@WWW.Example.com:8443/Path/") == ("example.com", "/path")

    @pytest.mark.parametrize("url", [
        "https://youtube.com/watch?v=1",
        "https://www.youtube.com",
        "https://m.youtube.com/shorts/x",
        "http://YOUTUBE.COM",
    ])
    def test_domain_entry_allows_domain_and_subdomains(self, url):
        """A bare domain entry covers every path and subdomain."""
        assert is_allowed(url, frozenset({"youtube.com"}))

    def test_lookalike_domain_not_allowed(self):
        """Suffix matching is per label, not per character."""
        assert not is_allowed("https://notyoutube.com", frozenset({"youtube.com"}))
        assert not is_allowed("https://youtube.com.evil.io", frozenset({"youtube.com"}))

    def test_path_entry_is_prefix_match(self):
        """A domain/path entry allows that path and below."""
        allowed = frozenset({"github.com/myorg"})
        assert is_allowed("https://github.com/myorg", allowed)
        assert is_allowed("https://github.com/myorg/repo", allowed)
        assert not is_allowed("https://github.com/myorganisation", allowed)
        assert not is_allowed("https://github.com/other/repo", allowed)

    def test_entry_with_scheme(self):
        """Entries written as full URLs still match."""
        assert is_allowed("https://docs.python.org/3/", frozenset({"https://docs.python.org/"}))


class TestHeuristic:
    """Tests for the new-account link check."""

    @pytest.mark.asyncio
    async def test_allowed_domain_from_new_account_not_flagged(self, heuristic, settings, clock):
        """An allow-listed link from a 1-hour-old account passes."""
        joined = clock.as_datetime() - timedelta(hours=1)
        result = await heuristic.check(GUILD, USER, "check https://youtube.com/watch?v=x", settings, joined)

        assert not result.flagged
        assert result.suspicious_urls == ()

    @pytest.mark.asyncio
    async def test_external_link_from_new_account_flagged(self, heuristic, settings, clock):
        """A non-allowed link from a 1-hour-old account is flagged with memberFor."""
        joined = clock.as_datetime() - timedelta(hours=1)
        result = await heuristic.check(GUILD, USER, "check https://scam.example/free", settings, joined)

        assert result.flagged
        assert result.suspicious_urls == ("https://scam.example/free",)
        assert result.member_for == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_established_member_not_flagged(self, heuristic, settings, clock):
        """Members older than the threshold may post anything."""
        joined = clock.as_datetime() - timedelta(hours=25)
        result = await heuristic.check(GUILD, USER, "https://scam.example", settings, joined)

        assert not result.flagged
        assert result.member_for == timedelta(hours=25)

    @pytest.mark.asyncio
    async def test_same_guild_jump_link_skipped(self, heuristic, settings, clock, executor):
        """Deep links into the current guild are fine."""
        joined = clock.as_datetime() - timedelta(minutes=5)
        content = f"see https://discord.com/channels/{GUILD}/5/6"
        result = await heuristic.check(GUILD, USER, content, settings, joined)

        assert not result.flagged
        executor.fetch_joined_at.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_guild_jump_link_suspicious(self, heuristic, settings, clock):
        """Deep links into another guild are external."""
        joined = clock.as_datetime() - timedelta(minutes=5)
        result = await heuristic.check(GUILD, USER, "https://discord.com/channels/999/5/6", settings, joined)

        assert result.flagged

    @pytest.mark.asyncio
    async def test_invite_to_this_guild_is_exempt(self, heuristic, settings, clock, executor):
        """Invites confirmed to lead here are not suspicious."""
        executor.resolve_invite_destination.return_value = GUILD
        joined = clock.as_datetime() - timedelta(minutes=5)
        result = await heuristic.check(GUILD, USER, "join discord.gg/home", settings, joined)

        assert not result.flagged
        executor.resolve_invite_destination.assert_awaited_once_with("home")

    @pytest.mark.asyncio
    async def test_unresolvable_invite_is_suspicious(self, heuristic, settings, clock, executor):
        """Invites are exempt only after confirmation."""
        executor.resolve_invite_destination.return_value = None
        joined = clock.as_datetime() - timedelta(minutes=5)
        result = await heuristic.check(GUILD, USER, "join discord.gg/raid", settings, joined)

        assert result.flagged

    @pytest.mark.asyncio
    async def test_invite_resolution_error_is_suspicious(self, heuristic, settings, clock, executor):
        """A failing lookup doesn't exempt the invite."""
        executor.resolve_invite_destination.side_effect = RuntimeError("rate limited")
        joined = clock.as_datetime() - timedelta(minutes=5)
        result = await heuristic.check(GUILD, USER, "https://discord.gg/raid", settings, joined)

        assert result.flagged

    @pytest.mark.asyncio
    async def test_join_time_fetched_when_missing(self, heuristic, settings, clock, executor):
        """The executor is asked only when the event has no join time."""
        executor.fetch_joined_at.return_value = clock.as_datetime() - timedelta(hours=2)
        result = await heuristic.check(GUILD, USER, "https://scam.example", settings)

        assert result.flagged
        assert result.member_for == timedelta(hours=2)
        executor.fetch_joined_at.assert_awaited_once_with(GUILD, USER)

    @pytest.mark.asyncio
    async def test_unknown_join_time_fails_open(self, heuristic, settings, executor):
        """Without a join time nobody is treated as new."""
        executor.fetch_joined_at.return_value = None
        result = await heuristic.check(GUILD, USER, "https://scam.example", settings)

        assert not result.flagged
        assert result.member_for is None

    @pytest.mark.asyncio
    async def test_no_links_skips_lookups(self, heuristic, settings, executor):
        """Plain text never costs an executor call."""
        result = await heuristic.check(GUILD, USER, "hello there", settings)

        assert not result.flagged
        executor.fetch_joined_at.assert_not_called()
        executor.resolve_invite_destination.assert_not_called()
